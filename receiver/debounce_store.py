"""
Per-campaign notification debounce.

Each campaign may notify at most once per cooldown window. Timestamps
are epoch milliseconds.
"""
from typing import Dict, Optional

from bittensor.utils.btlogging import logging

from receiver.adapters.key_value_store import IKeyValueStore
from receiver.constants import DEBOUNCE_COOLDOWN_MS, LAST_SEEN_KEY_PREFIX


class DebounceStore:
    """
    Last-notified timestamps keyed by campaign id.
    
    Not thread-safe: callers must serialize calls for the same campaign.
    When a key-value store is given, timestamps are written through to it
    and read back on first use so the gate survives a restart.
    """
    
    def __init__(self, cooldown_ms: int = DEBOUNCE_COOLDOWN_MS, store: Optional[IKeyValueStore] = None):
        self.cooldown_ms = cooldown_ms
        self.store = store
        self._last_notified: Dict[str, int] = {}
    
    def _key(self, campaign_id: str) -> str:
        return f"{LAST_SEEN_KEY_PREFIX}{campaign_id}"
    
    def last_notified(self, campaign_id: str) -> Optional[int]:
        """
        Get the last time a notification was recorded for a campaign.
        
        Returns:
            Epoch milliseconds, or None if the campaign never notified
        """
        if campaign_id in self._last_notified:
            return self._last_notified[campaign_id]
        if self.store is None:
            return None
        
        raw = self.store.get(self._key(campaign_id))
        if raw is None:
            return None
        try:
            timestamp = int(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            logging.warning(f"Ignoring invalid debounce timestamp for campaign {campaign_id}: {raw!r}")
            return None
        self._last_notified[campaign_id] = timestamp
        return timestamp
    
    def should_notify(self, campaign_id: str, now: int) -> bool:
        last = self.last_notified(campaign_id)
        return last is None or now - last > self.cooldown_ms
    
    def record_notified(self, campaign_id: str, now: int) -> None:
        self._last_notified[campaign_id] = now
        if self.store is None:
            return
        try:
            self.store.set(self._key(campaign_id), str(now).encode("utf-8"))
        except OSError as e:
            logging.warning(f"Failed to persist debounce timestamp for campaign {campaign_id}: {e}")
