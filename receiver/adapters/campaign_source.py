"""
Interface for fetching campaign rules from the campaign API.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List
import os
import requests
from bittensor.utils.btlogging import logging

from receiver import user_agent
from receiver.constants import API_KEY_HEADER, API_PREFIX, DEFAULT_REQUEST_TIMEOUT
from receiver.domain.errors import FetchError


class ICampaignSource(ABC):
    """Interface for fetching campaign rules."""
    
    @abstractmethod
    def get_campaigns(self) -> List[Dict[str, Any]]:
        """
        Get the organization's active campaign rules.
        
        Returns:
            List of campaign records, in the order returned by the API
        
        Raises:
            FetchError: If the rules could not be fetched or parsed
        """
        pass


class ApiCampaignSource(ICampaignSource):
    """
    Implementation of campaign source.
    
    Fetches campaigns from the API /api/v1/campaigns endpoint, authenticated
    with the organization API key.
    """
    
    def __init__(
        self,
        api_base_url: str = None,
        api_key: str = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize campaign source.
        
        Args:
            api_base_url: Base URL for the API. If not provided, must be set via API_BASE_URL env var.
            api_key: Organization API key. If not provided, must be set via API_KEY env var.
            timeout: Request timeout in seconds
        
        Raises:
            ValueError: If the base URL or API key is not provided and not set in environment.
        """
        self.api_base_url = api_base_url or os.getenv("API_BASE_URL")
        if not self.api_base_url:
            raise ValueError("API_BASE_URL must be set as environment variable or passed as parameter")
        self.api_key = api_key or os.getenv("API_KEY")
        if not self.api_key:
            raise ValueError("API_KEY must be set as environment variable or passed as parameter")
        self.api_base_url = self.api_base_url.rstrip("/")
        self.timeout = timeout
    
    def get_campaigns(self) -> List[Dict[str, Any]]:
        """
        Get list of active campaign rules.
        
        Returns:
            List of campaign records
        
        Raises:
            FetchError: On network, HTTP or parse failure
        """
        try:
            url = f"{self.api_base_url}{API_PREFIX}/campaigns"
            response = requests.get(
                url,
                headers={API_KEY_HEADER: self.api_key, "User-Agent": user_agent()},
                timeout=self.timeout,
            )
            response.raise_for_status()
            campaigns_data = response.json()
        except requests.exceptions.RequestException as e:
            logging.warning(f"Failed to fetch campaigns from API: {e}")
            raise FetchError(f"Failed to fetch campaigns: {e}") from e
        except ValueError as e:
            logging.warning(f"Failed to parse campaigns API response: {e}")
            raise FetchError(f"Invalid campaigns response: {e}") from e
        
        if not isinstance(campaigns_data, list):
            logging.warning(f"Unexpected campaigns API response type: {type(campaigns_data).__name__}")
            raise FetchError("Campaigns response is not a list")
        
        logging.info(f"Fetched {len(campaigns_data)} campaigns from API")
        return campaigns_data
