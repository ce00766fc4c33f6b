"""
Scanner adapter that turns BLE advertisements into beacon sightings.

Only iBeacon frames are understood: Apple manufacturer data (company id
0x004C) starting with 0x02 0x15, followed by a 16-byte UUID, big-endian
major and minor, and a signed measured tx power.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from bleak import BleakScanner
from bittensor.utils.btlogging import logging

from receiver.constants import (
    APPLE_COMPANY_ID,
    DEFAULT_PATH_LOSS_N,
    DEFAULT_TX_POWER,
    IBEACON_PAYLOAD_LENGTH,
    IBEACON_PREFIX,
)
from receiver.domain.sighting import Sighting


SightingCallback = Callable[[Sighting], None]


def parse_ibeacon(manufacturer_data: Dict[int, bytes]) -> Optional[Dict[str, Any]]:
    """
    Extract the iBeacon fields from advertisement manufacturer data.
    
    Args:
        manufacturer_data: Mapping of company id to payload bytes
    
    Returns:
        Dict with uuid (lower case, 8-4-4-4-12), major, minor and tx_power,
        or None if the advertisement is not an iBeacon
    """
    if not manufacturer_data:
        return None
    data = manufacturer_data.get(APPLE_COMPANY_ID)
    if not data or len(data) < IBEACON_PAYLOAD_LENGTH:
        return None
    if bytes(data[0:2]) != IBEACON_PREFIX:
        return None
    hexs = bytes(data[2:18]).hex()
    return {
        "uuid": f"{hexs[0:8]}-{hexs[8:12]}-{hexs[12:16]}-{hexs[16:20]}-{hexs[20:32]}",
        "major": int.from_bytes(data[18:20], "big"),
        "minor": int.from_bytes(data[20:22], "big"),
        "tx_power": int.from_bytes(data[22:23], "big", signed=True),
    }


def rssi_to_distance(rssi: Optional[int], tx_power: int = DEFAULT_TX_POWER, n: float = DEFAULT_PATH_LOSS_N) -> Optional[float]:
    """Estimate distance in meters from RSSI using the log-distance path-loss model."""
    if rssi is None:
        return None
    try:
        return round(10 ** ((tx_power - float(rssi)) / (10 * n)), 2)
    except (TypeError, ValueError):
        return None


class IScannerAdapter(ABC):
    """Interface for a beacon ranging facility."""
    
    @abstractmethod
    async def start(self, on_sighting: SightingCallback) -> None:
        """
        Start ranging and deliver every sighting to on_sighting.
        
        Args:
            on_sighting: Called once per sighting, in arrival order
        """
        pass
    
    @abstractmethod
    async def stop(self) -> None:
        """Stop ranging. No further sightings are delivered."""
        pass


class BleakScannerAdapter(IScannerAdapter):
    """Scanner adapter backed by bleak."""
    
    def __init__(self, region_uuid: Optional[str] = None, path_loss_n: float = DEFAULT_PATH_LOSS_N):
        """
        Initialize scanner adapter.
        
        Args:
            region_uuid: Only report beacons broadcasting this UUID (None reports all iBeacons)
            path_loss_n: Path-loss exponent used for distance estimates
        """
        self.region_uuid = region_uuid.lower() if region_uuid else None
        self.path_loss_n = path_loss_n
        self._scanner: Optional[BleakScanner] = None
        self._on_sighting: Optional[SightingCallback] = None
    
    def to_sighting(self, manufacturer_data: Dict[int, bytes], rssi: Optional[int]) -> Optional[Sighting]:
        """
        Convert one advertisement into a sighting.
        
        Returns:
            Sighting, or None if the advertisement is not an iBeacon in the region
        """
        beacon = parse_ibeacon(manufacturer_data)
        if beacon is None:
            return None
        if self.region_uuid is not None and beacon["uuid"] != self.region_uuid:
            return None
        return Sighting(
            uuid=beacon["uuid"],
            major=beacon["major"],
            minor=beacon["minor"],
            distance=rssi_to_distance(rssi, tx_power=beacon["tx_power"], n=self.path_loss_n),
            rssi=rssi,
        )
    
    def _detection_callback(self, device, advertisement_data) -> None:
        sighting = self.to_sighting(advertisement_data.manufacturer_data, advertisement_data.rssi)
        if sighting is None or self._on_sighting is None:
            return
        logging.debug(f"Ranged {sighting} from {device.address}")
        self._on_sighting(sighting)
    
    async def start(self, on_sighting: SightingCallback) -> None:
        self._on_sighting = on_sighting
        self._scanner = BleakScanner(detection_callback=self._detection_callback)
        await self._scanner.start()
        logging.info(f"Beacon ranging started for UUID: {self.region_uuid or 'any'}")
    
    async def stop(self) -> None:
        if self._scanner is None:
            return
        try:
            await self._scanner.stop()
        finally:
            self._scanner = None
            self._on_sighting = None
            logging.info("Beacon ranging stopped")
