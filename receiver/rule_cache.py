"""
Campaign rule cache.

Holds the last successfully fetched rule set and persists it so the
receiver can keep matching while offline.
"""
import json
from typing import Optional

from bittensor.utils.btlogging import logging

from receiver.adapters.campaign_source import ICampaignSource
from receiver.adapters.key_value_store import IKeyValueStore
from receiver.constants import CAMPAIGNS_CACHE_KEY, DEFAULT_ORGANIZATION
from receiver.domain.campaign_rule import RuleSet, build_rule_set
from receiver.domain.errors import FetchError


class RuleCache:
    """
    In-memory rule set backed by a key-value store.
    
    The rule set is only ever replaced as a whole: refresh() swaps in the
    freshly fetched set, load() swaps in the persisted one. Matching reads
    the current set through the rules property.
    """
    
    def __init__(
        self,
        campaign_source: ICampaignSource,
        store: IKeyValueStore,
        organization: str = DEFAULT_ORGANIZATION,
    ):
        """
        Initialize rule cache.
        
        Args:
            campaign_source: Source for fetching rules from the API
            store: Local persistence for the last fetched rule set
            organization: Namespace of the persisted copy
        """
        self.campaign_source = campaign_source
        self.store = store
        self.cache_key = f"{CAMPAIGNS_CACHE_KEY}:{organization}"
        self._rules: RuleSet = ()
    
    @property
    def rules(self) -> RuleSet:
        return self._rules
    
    def refresh(self) -> RuleSet:
        """
        Fetch rules from the API, replace the in-memory set and persist it.
        
        Returns:
            The new rule set
        
        Raises:
            FetchError: If fetching failed. The in-memory set is left untouched.
        """
        records = self.campaign_source.get_campaigns()
        try:
            rules = build_rule_set(records)
            payload = json.dumps([rule.to_dict() for rule in rules]).encode("utf-8")
        except (TypeError, ValueError, AttributeError) as e:
            raise FetchError(f"Invalid campaign records: {e}") from e
        
        self._rules = rules
        try:
            self.store.set(self.cache_key, payload)
        except OSError as e:
            logging.warning(f"Failed to persist {len(rules)} campaign rules: {e}")
        logging.info(f"Rule cache refreshed with {len(rules)} rules")
        return rules
    
    def load(self) -> Optional[RuleSet]:
        """
        Load the last persisted rule set and make it current.
        
        Returns:
            The persisted rule set, or None if nothing usable is stored
        """
        raw = self.store.get(self.cache_key)
        if raw is None:
            logging.info("No cached campaign rules found")
            return None
        try:
            records = json.loads(raw.decode("utf-8"))
            if not isinstance(records, list):
                raise ValueError("cached rules are not a list")
        except (UnicodeDecodeError, ValueError) as e:
            logging.warning(f"Ignoring corrupt campaign rule cache: {e}")
            return None
        
        self._rules = build_rule_set(records)
        logging.info(f"Loaded {len(self._rules)} cached campaign rules")
        return self._rules
