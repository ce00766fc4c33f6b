"""
Receiver configuration.

Following KISS principle - keep configuration simple and centralized.
"""
import os
from typing import Optional

from receiver.constants import (
    DEBOUNCE_COOLDOWN_MS,
    DEFAULT_CACHE_DIR,
    DEFAULT_DEVICE_ID,
    DEFAULT_DISPATCH_WORKERS,
    DEFAULT_ORGANIZATION,
    DEFAULT_REGION_UUID,
    DEFAULT_REQUEST_TIMEOUT,
)


class ReceiverConfig:
    """Simple configuration container for receiver settings."""
    
    def __init__(
        self,
        api_base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        device_id: Optional[str] = None,
        organization: str = DEFAULT_ORGANIZATION,
        cache_dir: str = DEFAULT_CACHE_DIR,
        region_uuid: Optional[str] = DEFAULT_REGION_UUID,
        cooldown_ms: int = DEBOUNCE_COOLDOWN_MS,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        dispatch_workers: int = DEFAULT_DISPATCH_WORKERS,
        notifier: str = "log",
    ):
        """
        Initialize receiver configuration.
        
        Args:
            api_base_url: Base URL of the campaign API. Falls back to API_BASE_URL env var.
            api_key: Organization API key. Falls back to API_KEY env var.
            device_id: Identifier reported with analytics events. Falls back to DEVICE_ID env var.
            organization: Namespace for the persisted rule cache
            cache_dir: Directory for local key-value persistence
            region_uuid: Only beacons broadcasting this UUID are reported (None for all)
            cooldown_ms: Debounce window per campaign in milliseconds
            request_timeout: Timeout for API requests in seconds
            dispatch_workers: Worker threads for fire-and-forget reports
            notifier: Notifier backend name ("log" or "command")
        """
        self.api_base_url = api_base_url or os.getenv("API_BASE_URL")
        self.api_key = api_key or os.getenv("API_KEY")
        self.device_id = device_id or os.getenv("DEVICE_ID", DEFAULT_DEVICE_ID)
        self.organization = organization
        self.cache_dir = os.path.expanduser(cache_dir)
        self.region_uuid = region_uuid.lower() if region_uuid else None
        self.cooldown_ms = cooldown_ms
        self.request_timeout = request_timeout
        self.dispatch_workers = dispatch_workers
        self.notifier = notifier
