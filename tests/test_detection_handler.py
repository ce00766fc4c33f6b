"""
Test cases for the detection pipeline: match, debounce, notify, report.
"""
import unittest
from unittest.mock import Mock

from receiver.adapters.key_value_store import InMemoryKeyValueStore
from receiver.debounce_store import DebounceStore
from receiver.detection_handler import DetectionHandler, DetectionOutcome
from receiver.dispatcher import IDispatcher
from receiver.domain.campaign_rule import CampaignRule
from receiver.domain.errors import FetchError, NotifyError, ReportError
from receiver.domain.sighting import Sighting
from receiver.rule_cache import RuleCache


T0 = 1_700_000_000_000


class InlineDispatcher(IDispatcher):
    """Runs tasks immediately and discards their errors, like a detached task."""
    
    def __init__(self):
        self.dispatched = []
    
    def dispatch(self, task, *args, **kwargs):
        self.dispatched.append((task, args))
        try:
            task(*args, **kwargs)
        except Exception:
            pass
    
    def shutdown(self, wait=False):
        pass


class FakeClock:
    def __init__(self, now):
        self.now = now
    
    def __call__(self):
        return self.now


RULE = CampaignRule(
    campaign_id="c1",
    content_title="Coffee",
    content_body="2 for 1 today",
    image_url=None,
    trigger_event_type="enter",
    beacon_id="b1",
    uuid="X",
    major=1,
    minor=1,
)


class TestDetectionHandler(unittest.TestCase):
    """Test cases for DetectionHandler."""
    
    def setUp(self):
        self.rules = (RULE,)
        self.notifier = Mock()
        self.report_client = Mock()
        self.dispatcher = InlineDispatcher()
        self.clock = FakeClock(T0)
        self.debounce = DebounceStore(cooldown_ms=60000)
        self.handler = DetectionHandler(
            rules_provider=lambda: self.rules,
            debounce_store=self.debounce,
            notifier=self.notifier,
            report_client=self.report_client,
            dispatcher=self.dispatcher,
            device_id="device-42",
            clock=self.clock,
        )
    
    def test_match_notifies_and_reports(self):
        """Test the full path: notification, telemetry and analytics."""
        outcome = self.handler.handle(Sighting(uuid="x", major="1", minor=1, battery_level=87))
        
        self.assertEqual(outcome, DetectionOutcome.NOTIFIED)
        self.notifier.notify.assert_called_once_with("Coffee", "2 for 1 today", None)
        self.report_client.report_telemetry.assert_called_once_with("b1", 87)
        self.report_client.report_analytics_event.assert_called_once_with(
            "b1", "c1", "device-42", "campaign_triggered"
        )
        self.assertEqual(self.debounce.last_notified("c1"), T0)
    
    def test_no_match_has_no_side_effects(self):
        """Test that an unmatched sighting notifies and reports nothing."""
        outcome = self.handler.handle(Sighting(uuid="x", major=1, minor=2))
        
        self.assertEqual(outcome, DetectionOutcome.NO_MATCH)
        self.notifier.notify.assert_not_called()
        self.assertEqual(self.dispatcher.dispatched, [])
        self.assertIsNone(self.debounce.last_notified("c1"))
    
    def test_empty_rule_cache_has_no_side_effects(self):
        self.rules = ()
        outcome = self.handler.handle(Sighting(uuid="x", major=1, minor=1))
        self.assertEqual(outcome, DetectionOutcome.NO_MATCH)
        self.notifier.notify.assert_not_called()
        self.assertEqual(self.dispatcher.dispatched, [])
    
    def test_second_sighting_within_cooldown_is_debounced(self):
        """Test two sightings 5 s apart: one notification, one analytics event, two telemetry reports."""
        sighting = Sighting(uuid="X", major=1, minor=1)
        self.assertEqual(self.handler.handle(sighting), DetectionOutcome.NOTIFIED)
        self.clock.now = T0 + 5000
        self.assertEqual(self.handler.handle(sighting), DetectionOutcome.DEBOUNCED)
        
        self.assertEqual(self.notifier.notify.call_count, 1)
        self.assertEqual(self.report_client.report_analytics_event.call_count, 1)
        self.assertEqual(self.report_client.report_telemetry.call_count, 2)
        self.assertEqual(self.debounce.last_notified("c1"), T0)
    
    def test_notifies_again_after_cooldown(self):
        sighting = Sighting(uuid="X", major=1, minor=1)
        self.handler.handle(sighting)
        self.clock.now = T0 + 60001
        self.assertEqual(self.handler.handle(sighting), DetectionOutcome.NOTIFIED)
        self.assertEqual(self.notifier.notify.call_count, 2)
    
    def test_missing_battery_defaults_to_full(self):
        self.handler.handle(Sighting(uuid="X", major=1, minor=1))
        self.report_client.report_telemetry.assert_called_once_with("b1", 100)
    
    def test_zero_battery_is_reported(self):
        self.handler.handle(Sighting(uuid="X", major=1, minor=1, battery_level=0))
        self.report_client.report_telemetry.assert_called_once_with("b1", 0)
    
    def test_notify_failure_still_records_and_reports(self):
        """Test that a failed notification is logged, recorded and reported."""
        self.notifier.notify.side_effect = NotifyError("permission revoked")
        
        outcome = self.handler.handle(Sighting(uuid="X", major=1, minor=1))
        
        self.assertEqual(outcome, DetectionOutcome.NOTIFIED)
        self.assertEqual(self.debounce.last_notified("c1"), T0)
        self.report_client.report_analytics_event.assert_called_once()
        
        self.clock.now = T0 + 1000
        self.assertEqual(self.handler.handle(Sighting(uuid="X", major=1, minor=1)), DetectionOutcome.DEBOUNCED)
        self.assertEqual(self.notifier.notify.call_count, 1)
    
    def test_unexpected_notifier_error_still_records_and_reports(self):
        """Test that any notifier exception is contained and the debounce timestamp is recorded."""
        self.notifier.notify.side_effect = ValueError("embedded null byte")
        
        outcome = self.handler.handle(Sighting(uuid="X", major=1, minor=1))
        
        self.assertEqual(outcome, DetectionOutcome.NOTIFIED)
        self.assertEqual(self.debounce.last_notified("c1"), T0)
        self.report_client.report_analytics_event.assert_called_once()
        
        self.clock.now = T0 + 1000
        self.assertEqual(self.handler.handle(Sighting(uuid="X", major=1, minor=1)), DetectionOutcome.DEBOUNCED)
        self.assertEqual(self.notifier.notify.call_count, 1)
    
    def test_report_failures_are_swallowed(self):
        """Test that ReportError from either report never reaches the caller."""
        self.report_client.report_telemetry.side_effect = ReportError("503")
        self.report_client.report_analytics_event.side_effect = ReportError("503")
        
        outcome = self.handler.handle(Sighting(uuid="X", major=1, minor=1))
        self.assertEqual(outcome, DetectionOutcome.NOTIFIED)
    
    def test_on_ranged_processes_in_order(self):
        """Test that a ranging batch is processed in arrival order and kept for display."""
        sightings = [
            Sighting(uuid="X", major=1, minor=1),
            Sighting(uuid="Y", major=1, minor=1),
            Sighting(uuid="X", major=1, minor=1),
        ]
        outcomes = self.handler.on_ranged(sightings)
        self.assertEqual(
            outcomes,
            [DetectionOutcome.NOTIFIED, DetectionOutcome.NO_MATCH, DetectionOutcome.DEBOUNCED],
        )
        self.assertEqual(self.handler.detected, sightings)
    
    def test_offline_startup_uses_cached_rules(self):
        """Test that rules persisted earlier are used when the fetch fails at startup."""
        store = InMemoryKeyValueStore()
        online_source = Mock()
        online_source.get_campaigns.return_value = [RULE.to_dict()]
        RuleCache(online_source, store).refresh()
        
        offline_source = Mock()
        offline_source.get_campaigns.side_effect = FetchError("network down")
        cache = RuleCache(offline_source, store)
        with self.assertRaises(FetchError):
            cache.refresh()
        cache.load()
        
        self.handler.rules_provider = lambda: cache.rules
        outcome = self.handler.handle(Sighting(uuid="x", major=1, minor=1))
        self.assertEqual(outcome, DetectionOutcome.NOTIFIED)
        self.notifier.notify.assert_called_once()


if __name__ == "__main__":
    unittest.main()
