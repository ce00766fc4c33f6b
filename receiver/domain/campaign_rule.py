"""
Campaign rule domain model.

Represents a campaign trigger: the campaign content plus the beacon
triplet (uuid, major, minor) that fires it.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from bittensor.utils.btlogging import logging


@dataclass(frozen=True)
class CampaignRule:
    """Represents a campaign bound to one beacon triplet."""
    
    campaign_id: str
    content_title: str
    content_body: str
    image_url: Optional[str]
    trigger_event_type: Optional[str]
    beacon_id: str
    uuid: str  # Compared case-insensitively
    major: Union[int, str]  # Compared numerically
    minor: Union[int, str]
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CampaignRule":
        """
        Build a rule from one element of the GET /campaigns response.
        
        Args:
            data: Campaign record as returned by the API
        
        Returns:
            CampaignRule
        
        Raises:
            KeyError: If campaign_id, uuid, major or minor is missing
        """
        for field in ("campaign_id", "uuid", "major", "minor"):
            if data.get(field) is None:
                raise KeyError(field)
        return cls(
            campaign_id=str(data["campaign_id"]),
            content_title=data.get("content_title") or "",
            content_body=data.get("content_body") or "",
            image_url=data.get("image_url"),
            trigger_event_type=data.get("trigger_event_type"),
            beacon_id=str(data.get("beacon_id", "")),
            uuid=str(data["uuid"]),
            major=data["major"],
            minor=data["minor"],
        )
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    def __str__(self) -> str:
        return f"CampaignRule(campaign_id={self.campaign_id}, uuid={self.uuid}, major={self.major}, minor={self.minor})"


# Ordered as returned by the API; first match wins
RuleSet = Tuple[CampaignRule, ...]


def build_rule_set(records: Iterable[Dict[str, Any]]) -> RuleSet:
    """
    Convert raw campaign records into a rule set, skipping malformed entries.
    
    Args:
        records: Campaign records from the API or the local cache
    
    Returns:
        RuleSet preserving input order
    """
    rules = []
    for record in records:
        try:
            rules.append(CampaignRule.from_dict(record))
        except (KeyError, TypeError, AttributeError) as e:
            logging.warning(f"Skipping malformed campaign record {record}: missing or invalid {e}")
    return tuple(rules)
