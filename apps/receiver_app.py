import argparse
import asyncio
import os
import traceback
from typing import Optional

from bittensor.core.config import Config
from bittensor.utils.btlogging import logging

from receiver.adapters.campaign_source import ApiCampaignSource
from receiver.adapters.key_value_store import FileKeyValueStore
from receiver.adapters.notifier import create_notifier
from receiver.adapters.report_client import ApiReportClient
from receiver.adapters.scanner import BleakScannerAdapter, IScannerAdapter
from receiver.constants import (
    DEBOUNCE_COOLDOWN_MS,
    DEFAULT_CACHE_DIR,
    DEFAULT_DISPATCH_WORKERS,
    DEFAULT_ORGANIZATION,
    DEFAULT_REGION_UUID,
    DEFAULT_REQUEST_TIMEOUT,
    STATUS_FETCHING,
    STATUS_INITIALIZING,
    STATUS_OFFLINE,
)
from receiver.debounce_store import DebounceStore
from receiver.detection_handler import DetectionHandler
from receiver.dispatcher import ThreadPoolDispatcher
from receiver.domain.errors import FetchError
from receiver.domain.sighting import Sighting
from receiver.receiver_config import ReceiverConfig
from receiver.rule_cache import RuleCache


def load_campaign_rules(rule_cache: RuleCache) -> str:
    """
    Refresh the rule cache, falling back to the persisted copy when offline.
    
    Args:
        rule_cache: Cache to populate
    
    Returns:
        Status message for the user
    """
    try:
        rules = rule_cache.refresh()
        return f"Loaded {len(rules)} campaigns."
    except FetchError as e:
        logging.error(f"API Error: {e}")
        rule_cache.load()
        return STATUS_OFFLINE


class ReceiverApp:
    """
    Main receiver application.
    
    Wires the adapters into the detection handler, loads campaign rules once
    at startup and then processes sightings in arrival order until shutdown.
    """
    
    def __init__(
        self,
        receiver_config: Optional[ReceiverConfig] = None,
        scanner: Optional[IScannerAdapter] = None,
    ):
        """
        Initialize receiver application.
        
        Args:
            receiver_config: Settings to use. If not provided, they are parsed from the command line
                and logging is configured from the same arguments.
            scanner: Scanner adapter. Defaults to a bleak scanner for the configured region.
        """
        self.status = STATUS_INITIALIZING
        if receiver_config is None:
            self.config = self._get_config()
            self._setup_logging()
            receiver_config = ReceiverConfig(
                api_base_url=self.config.api_base_url,
                api_key=self.config.api_key,
                device_id=self.config.device_id,
                organization=self.config.organization,
                cache_dir=self.config.cache_dir,
                region_uuid=self.config.region_uuid or None,
                cooldown_ms=self.config.cooldown_ms,
                request_timeout=self.config.request_timeout,
                dispatch_workers=self.config.dispatch_workers,
                notifier=self.config.notifier,
            )
        self.receiver_config = receiver_config
        self._initialize_core_components(scanner)
    
    def _initialize_core_components(self, scanner: Optional[IScannerAdapter] = None):
        """Initialize all core components following dependency injection."""
        cfg = self.receiver_config
        self.store = FileKeyValueStore(cfg.cache_dir)
        self.campaign_source = ApiCampaignSource(
            api_base_url=cfg.api_base_url,
            api_key=cfg.api_key,
            timeout=cfg.request_timeout,
        )
        self.rule_cache = RuleCache(self.campaign_source, self.store, organization=cfg.organization)
        self.report_client = ApiReportClient(
            api_base_url=cfg.api_base_url,
            api_key=cfg.api_key,
            timeout=cfg.request_timeout,
        )
        self.dispatcher = ThreadPoolDispatcher(max_workers=cfg.dispatch_workers)
        self.handler = DetectionHandler(
            rules_provider=lambda: self.rule_cache.rules,
            debounce_store=DebounceStore(cooldown_ms=cfg.cooldown_ms, store=self.store),
            notifier=create_notifier(cfg.notifier),
            report_client=self.report_client,
            dispatcher=self.dispatcher,
            device_id=cfg.device_id,
        )
        self.scanner: IScannerAdapter = scanner or BleakScannerAdapter(region_uuid=cfg.region_uuid)
    
    def _get_config(self) -> Config:
        """Get receiver configuration from the command line."""
        parser = argparse.ArgumentParser()
        parser.add_argument("--api-base-url", type=str, default=None, help="Campaign API base URL (or API_BASE_URL env var).")
        parser.add_argument("--api-key", type=str, default=None, help="Organization API key (or API_KEY env var).")
        parser.add_argument("--device-id", type=str, default=None, help="Device id reported with analytics (or DEVICE_ID env var).")
        parser.add_argument("--organization", type=str, default=DEFAULT_ORGANIZATION, help="Namespace of the local rule cache.")
        parser.add_argument("--cache-dir", type=str, default=DEFAULT_CACHE_DIR, help="Directory for local persistence.")
        parser.add_argument(
            "--region-uuid",
            type=str,
            default=DEFAULT_REGION_UUID,
            help="Only range beacons with this UUID. Pass an empty string to range all iBeacons.",
        )
        parser.add_argument("--cooldown-ms", type=int, default=DEBOUNCE_COOLDOWN_MS, help="Per-campaign notification cooldown.")
        parser.add_argument("--request-timeout", type=float, default=DEFAULT_REQUEST_TIMEOUT, help="API request timeout in seconds.")
        parser.add_argument("--dispatch-workers", type=int, default=DEFAULT_DISPATCH_WORKERS, help="Worker threads for reports.")
        parser.add_argument("--notifier", choices=["log", "command"], default="log", help="How notifications are shown.")
        logging.add_args(parser)
        
        config = Config(parser)
        
        if config.cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be non-negative, got {config.cooldown_ms}")
        
        config.full_path = os.path.expanduser(
            "{}/receiver/{}".format(config.logging.logging_dir, config.organization)
        )
        os.makedirs(config.full_path, exist_ok=True)
        return config
    
    def _setup_logging(self):
        """Set up logging."""
        logging(config=self.config, logging_dir=self.config.full_path)
        logging.info(f"Running beacon receiver for organization: {self.config.organization}")
    
    def set_status(self, status: str) -> None:
        self.status = status
        logging.info(f"[blue]Status:[/blue] {status}")
    
    def handle_sighting(self, sighting: Sighting) -> None:
        """Process one sighting. Errors are logged and never stop the loop."""
        try:
            self.handler.on_ranged([sighting])
        except Exception as e:
            logging.error(f"Error handling {sighting}: {e}")
            traceback.print_exc()
    
    async def run(self, queue: Optional[asyncio.Queue] = None):
        """Main detection loop."""
        self.set_status(STATUS_FETCHING)
        self.set_status(load_campaign_rules(self.rule_cache))
        
        if queue is None:
            queue = asyncio.Queue()
        await self.scanner.start(queue.put_nowait)
        logging.info("Starting detection loop.")
        try:
            while True:
                sighting = await queue.get()
                self.handle_sighting(sighting)
        except asyncio.CancelledError:
            logging.info("Detection loop cancelled.")
        finally:
            await self.scanner.stop()
            self.dispatcher.shutdown(wait=False)
            logging.success("Receiver stopped.")


# Run the receiver.
if __name__ == "__main__":
    app = ReceiverApp()
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logging.success("Keyboard interrupt detected. Exiting receiver.")
