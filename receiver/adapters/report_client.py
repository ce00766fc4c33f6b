"""
Client for reporting beacon telemetry and analytics events to the API.

Both calls are best-effort: callers dispatch them without waiting and
discard any ReportError.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import os
import requests
from bittensor.utils.btlogging import logging

from receiver import user_agent
from receiver.constants import API_KEY_HEADER, API_PREFIX, DEFAULT_REQUEST_TIMEOUT
from receiver.domain.errors import ReportError


class IReportClient(ABC):
    """Interface for remote telemetry and analytics reporting."""
    
    @abstractmethod
    def report_telemetry(self, beacon_id: str, battery_level: int) -> None:
        """
        Update last-seen time and battery level of a beacon. Idempotent.
        
        Raises:
            ReportError: If the API call failed
        """
        pass
    
    @abstractmethod
    def report_analytics_event(self, beacon_id: str, campaign_id: str, device_id: str, event_type: str) -> None:
        """
        Append an analytics event. Not idempotent.
        
        Raises:
            ReportError: If the API call failed
        """
        pass


class ApiReportClient(IReportClient):
    """Reports to /api/v1/beacons/telemetry and /api/v1/analytics/event."""
    
    def __init__(
        self,
        api_base_url: str = None,
        api_key: str = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize report client.
        
        Args:
            api_base_url: Base URL for the API. If not provided, must be set via API_BASE_URL env var.
            api_key: Organization API key. If not provided, must be set via API_KEY env var.
            timeout: Request timeout in seconds
            session: Optional requests session (a new one is created otherwise)
        
        Raises:
            ValueError: If the base URL or API key is not provided and not set in environment.
        """
        self.api_base_url = api_base_url or os.getenv("API_BASE_URL")
        if not self.api_base_url:
            raise ValueError("API_BASE_URL must be set as environment variable or passed as parameter")
        api_key = api_key or os.getenv("API_KEY")
        if not api_key:
            raise ValueError("API_KEY must be set as environment variable or passed as parameter")
        self.api_base_url = self.api_base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            API_KEY_HEADER: api_key,
            "Content-Type": "application/json",
            "User-Agent": user_agent(),
        })
    
    def _post(self, path: str, payload: Dict[str, Any]) -> None:
        url = f"{self.api_base_url}{API_PREFIX}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ReportError(f"POST {path} failed: {e}") from e
        logging.debug(f"POST {path} -> {response.status_code}")
    
    def report_telemetry(self, beacon_id: str, battery_level: int) -> None:
        self._post("/beacons/telemetry", {
            "beacon_id": beacon_id,
            "battery_level": battery_level,
        })
    
    def report_analytics_event(self, beacon_id: str, campaign_id: str, device_id: str, event_type: str) -> None:
        self._post("/analytics/event", {
            "beacon_id": beacon_id,
            "campaign_id": campaign_id,
            "user_device_id": device_id,
            "event_type": event_type,
        })
