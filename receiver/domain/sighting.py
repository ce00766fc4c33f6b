"""
Sighting domain model.

One observation of a beacon as reported by the scanner adapter.
"""
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Sighting:
    """A single beacon sighting. Not persisted."""
    
    uuid: str
    major: Union[int, str]  # Hardware layers may report numbers as strings
    minor: Union[int, str]
    distance: Optional[float] = None  # Estimated meters
    rssi: Optional[int] = None
    battery_level: Optional[int] = None  # Percent
    
    def __str__(self) -> str:
        return f"Sighting(uuid={self.uuid}, major={self.major}, minor={self.minor}, rssi={self.rssi})"
