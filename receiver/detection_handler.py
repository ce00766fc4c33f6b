"""
Detection handler: the per-sighting pipeline.

Detected -> Matched -> Gate -> Notify -> Record -> Report.

Telemetry is reported for every matched sighting, debounced or not.
The debounce timestamp is recorded even when the notification could not
be displayed, so a broken notifier does not cause repeated attempts
within the cooldown window.
"""
import time
from enum import Enum
from typing import Callable, List

from bittensor.utils.btlogging import logging

from receiver.adapters.notifier import INotifier
from receiver.adapters.report_client import IReportClient
from receiver.constants import CAMPAIGN_TRIGGERED_EVENT, DEFAULT_BATTERY_LEVEL, DEFAULT_DEVICE_ID
from receiver.debounce_store import DebounceStore
from receiver.dispatcher import IDispatcher
from receiver.domain.campaign_rule import CampaignRule, RuleSet
from receiver.domain.errors import NotifyError
from receiver.domain.sighting import Sighting
from receiver.matcher import match


class DetectionOutcome(Enum):
    """Terminal state of one sighting."""
    NO_MATCH = "no_match"
    DEBOUNCED = "debounced"
    NOTIFIED = "notified"


def epoch_millis() -> int:
    return int(time.time() * 1000)


class DetectionHandler:
    """
    Processes sightings one at a time.
    
    The handler is not reentrant: the caller must not start a new sighting
    before handle() returns. Reports are dispatched and may still be
    running when the next sighting is handled.
    """
    
    def __init__(
        self,
        rules_provider: Callable[[], RuleSet],
        debounce_store: DebounceStore,
        notifier: INotifier,
        report_client: IReportClient,
        dispatcher: IDispatcher,
        device_id: str = DEFAULT_DEVICE_ID,
        clock: Callable[[], int] = epoch_millis,
    ):
        """
        Initialize detection handler.
        
        Args:
            rules_provider: Returns the current rule set (usually RuleCache.rules getter)
            debounce_store: Per-campaign notification gate
            notifier: Displays the campaign message
            report_client: Remote telemetry/analytics client
            dispatcher: Schedules reports without waiting for them
            device_id: Device identifier sent with analytics events
            clock: Returns the current time in epoch milliseconds
        """
        self.rules_provider = rules_provider
        self.debounce_store = debounce_store
        self.notifier = notifier
        self.report_client = report_client
        self.dispatcher = dispatcher
        self.device_id = device_id
        self.clock = clock
        self.detected: List[Sighting] = []
    
    def on_ranged(self, sightings: List[Sighting]) -> List[DetectionOutcome]:
        """
        Handle a batch of sightings from one ranging pass, in order.
        
        Args:
            sightings: Sightings in arrival order
        
        Returns:
            Outcome per sighting
        """
        if sightings:
            self.detected = list(sightings)
        return [self.handle(sighting) for sighting in sightings]
    
    def handle(self, sighting: Sighting) -> DetectionOutcome:
        """
        Run one sighting through the pipeline.
        
        Never raises for a failed notification or report.
        
        Args:
            sighting: Sighting from the scanner
        
        Returns:
            Terminal state reached
        """
        rule = match(sighting, self.rules_provider())
        if rule is None:
            logging.debug(f"No campaign for {sighting}")
            return DetectionOutcome.NO_MATCH
        
        self._dispatch_telemetry(rule, sighting)
        
        now = self.clock()
        if not self.debounce_store.should_notify(rule.campaign_id, now):
            logging.debug(f"Campaign {rule.campaign_id} debounced")
            return DetectionOutcome.DEBOUNCED
        
        self._notify(rule)
        self.debounce_store.record_notified(rule.campaign_id, now)
        self._dispatch_analytics(rule)
        return DetectionOutcome.NOTIFIED
    
    def _notify(self, rule: CampaignRule) -> None:
        try:
            self.notifier.notify(rule.content_title, rule.content_body, rule.image_url)
            logging.info(f"Notified campaign {rule.campaign_id}: {rule.content_title}")
        except NotifyError as e:
            logging.warning(f"Failed to display notification for campaign {rule.campaign_id}: {e}")
        except Exception as e:
            logging.error(f"Unexpected notifier error for campaign {rule.campaign_id}: {e}")
    
    def _dispatch_telemetry(self, rule: CampaignRule, sighting: Sighting) -> None:
        battery_level = sighting.battery_level
        if battery_level is None:
            battery_level = DEFAULT_BATTERY_LEVEL
        self.dispatcher.dispatch(self.report_client.report_telemetry, rule.beacon_id, battery_level)
    
    def _dispatch_analytics(self, rule: CampaignRule) -> None:
        self.dispatcher.dispatch(
            self.report_client.report_analytics_event,
            rule.beacon_id,
            rule.campaign_id,
            self.device_id,
            CAMPAIGN_TRIGGERED_EVENT,
        )
