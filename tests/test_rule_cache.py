"""
Test cases for RuleCache refresh and offline fallback.
"""
import json
import unittest
from unittest.mock import Mock

from receiver.adapters.key_value_store import InMemoryKeyValueStore
from receiver.domain.errors import FetchError
from receiver.rule_cache import RuleCache


CAMPAIGNS = [
    {
        "campaign_id": "c1",
        "content_title": "Coffee",
        "content_body": "2 for 1 today",
        "image_url": "https://example.com/coffee.png",
        "trigger_event_type": "enter",
        "beacon_id": "b1",
        "uuid": "FDA50693-A4E2-4FB1-AFCF-C6EB07647825",
        "major": 1,
        "minor": 1,
    },
    {
        "campaign_id": "c2",
        "content_title": "Shoes",
        "content_body": "20% off",
        "image_url": None,
        "trigger_event_type": "enter",
        "beacon_id": "b2",
        "uuid": "fda50693-a4e2-4fb1-afcf-c6eb07647825",
        "major": "1",
        "minor": "2",
    },
]


class TestRuleCache(unittest.TestCase):
    """Test cases for RuleCache."""
    
    def setUp(self):
        self.source = Mock()
        self.store = InMemoryKeyValueStore()
        self.cache = RuleCache(self.source, self.store, organization="org-1")
    
    def test_empty_before_refresh(self):
        self.assertEqual(self.cache.rules, ())
    
    def test_refresh_replaces_and_persists(self):
        """Test that a successful refresh replaces the set and writes it to the store."""
        self.source.get_campaigns.return_value = CAMPAIGNS
        rules = self.cache.refresh()
        
        self.assertEqual([r.campaign_id for r in rules], ["c1", "c2"])
        self.assertEqual(self.cache.rules, rules)
        persisted = json.loads(self.store.get("campaigns:org-1").decode("utf-8"))
        self.assertEqual([r["campaign_id"] for r in persisted], ["c1", "c2"])
    
    def test_failed_refresh_keeps_current_rules(self):
        """Test that a FetchError leaves the in-memory set and the store untouched."""
        self.source.get_campaigns.return_value = CAMPAIGNS
        rules = self.cache.refresh()
        stored = self.store.get("campaigns:org-1")
        
        self.source.get_campaigns.side_effect = FetchError("offline")
        with self.assertRaises(FetchError):
            self.cache.refresh()
        self.assertEqual(self.cache.rules, rules)
        self.assertEqual(self.store.get("campaigns:org-1"), stored)
    
    def test_load_returns_persisted_rules(self):
        """Test that a new cache can load rules persisted by an earlier one."""
        self.source.get_campaigns.return_value = CAMPAIGNS
        self.cache.refresh()
        
        offline = RuleCache(Mock(), self.store, organization="org-1")
        loaded = offline.load()
        self.assertEqual([r.campaign_id for r in loaded], ["c1", "c2"])
        self.assertEqual(offline.rules, loaded)
    
    def test_load_without_cache(self):
        self.assertIsNone(self.cache.load())
        self.assertEqual(self.cache.rules, ())
    
    def test_load_ignores_corrupt_cache(self):
        """Test that a corrupt cache entry is treated as absent."""
        self.store.set("campaigns:org-1", b"{not json")
        self.assertIsNone(self.cache.load())
        self.assertEqual(self.cache.rules, ())
    
    def test_cache_is_namespaced_by_organization(self):
        self.source.get_campaigns.return_value = CAMPAIGNS
        self.cache.refresh()
        other = RuleCache(Mock(), self.store, organization="org-2")
        self.assertIsNone(other.load())
    
    def test_malformed_records_are_skipped(self):
        """Test that records without a beacon triplet are dropped."""
        self.source.get_campaigns.return_value = [{"campaign_id": "broken"}] + CAMPAIGNS
        rules = self.cache.refresh()
        self.assertEqual([r.campaign_id for r in rules], ["c1", "c2"])


if __name__ == "__main__":
    unittest.main()
