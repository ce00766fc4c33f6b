"""
Beacon-to-campaign matching.

A sighting matches a rule when the UUIDs are equal ignoring case and the
major and minor values are numerically equal. Hardware layers and the
API may deliver the same number as int or str, so both sides are coerced.
"""
from typing import Iterable, Optional

from receiver.domain.campaign_rule import CampaignRule
from receiver.domain.sighting import Sighting


def _to_int(value) -> Optional[int]:
    """Coerce an int-like value (int, float or numeric string) to int. None if impossible."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def _normalize_uuid(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip().lower()


def match(sighting: Sighting, rules: Iterable[CampaignRule]) -> Optional[CampaignRule]:
    """
    Find the campaign rule triggered by a sighting.
    
    Args:
        sighting: Beacon sighting from the scanner
        rules: Rule set, in fetch order
    
    Returns:
        The first rule whose (uuid, major, minor) equals the sighting's, or None
    """
    uuid = _normalize_uuid(sighting.uuid)
    major = _to_int(sighting.major)
    minor = _to_int(sighting.minor)
    if uuid is None or major is None or minor is None:
        return None
    
    for rule in rules:
        if (
            _normalize_uuid(rule.uuid) == uuid
            and _to_int(rule.major) == major
            and _to_int(rule.minor) == minor
        ):
            return rule
    return None
