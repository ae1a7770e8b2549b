"""
Delivery fee lookup by coverage zone (geofence)
"""
import logging
from typing import List, Optional

from ...domain.entities import CoverageZone
from ...domain.geo import Coordinates, is_point_in_polygon
from ...domain.repositories import ICoverageZoneRepository

logger = logging.getLogger(__name__)


def find_zone(point: Coordinates, zones: List[CoverageZone]) -> Optional[CoverageZone]:
    """First active zone containing the point"""
    for zone in zones:
        if not zone.is_active or len(zone.polygon) < 3:
            continue
        polygon = [(p.lat, p.lng) for p in zone.polygon]
        if is_point_in_polygon(point, polygon):
            return zone
    return None


class DeliveryFeeService:
    """Maps coordinates to a flat delivery fee; 0 means outside every zone"""

    def __init__(self, zone_repo: ICoverageZoneRepository):
        self.zone_repo = zone_repo

    async def fee_for(self, point: Coordinates, business_id: Optional[str] = None) -> float:
        """Business zones win over global zones"""
        if business_id:
            zone = find_zone(point, await self.zone_repo.list_zones(business_id))
            if zone:
                logger.debug(f"📍 {point} inside business zone '{zone.name}'")
                return zone.delivery_fee

        zone = find_zone(point, await self.zone_repo.list_zones(None))
        if zone:
            logger.debug(f"📍 {point} inside global zone '{zone.name}'")
            return zone.delivery_fee

        return 0.0
