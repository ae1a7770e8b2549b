"""
Location Manager Service
Create, edit, delete and favorite client delivery locations
"""
import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from ...config import settings
from ...domain.entities import ClientLocation, ValidationIssue
from ...domain.exceptions import NotFound, ValidationFailed
from ...domain.geo import ParsedLocation, parse_location_input
from ...domain.order_draft import OrderDraft
from ...domain.repositories import IImageStorage, ILocationRepository
from .delivery_fee import DeliveryFeeService

logger = logging.getLogger(__name__)

DEFAULT_SECTOR = "Sin especificar"


class LocationManager:
    """
    Location writes for the manual order workflow.

    Fees come from the coverage zones; a location outside every zone (or
    a Plus Code without an operator fee) gets the fallback fee and is
    flagged out_of_zone, it never blocks the order.
    """

    def __init__(
        self,
        location_repo: ILocationRepository,
        fee_service: DeliveryFeeService,
        image_storage: Optional[IImageStorage] = None,
        fallback_fee: Optional[float] = None,
    ):
        self.location_repo = location_repo
        self.fee_service = fee_service
        self.image_storage = image_storage
        self.fallback_fee = settings.fallback_delivery_fee if fallback_fee is None else fallback_fee

    async def list_locations(self, client_id: str) -> List[ClientLocation]:
        return await self.location_repo.list_by_client(client_id)

    async def resolve_fee(
        self,
        parsed: ParsedLocation,
        business_id: Optional[str] = None,
        explicit_fee: Optional[float] = None,
    ) -> Tuple[float, bool]:
        """(fee, out_of_zone) for a parsed location"""
        fee = 0.0
        if parsed.coordinates is not None:
            try:
                fee = await self.fee_service.fee_for(parsed.coordinates, business_id)
            except Exception as e:
                logger.error(f"❌ Zone lookup failed for {parsed.value}: {e}")
                fee = 0.0
        elif explicit_fee is not None and explicit_fee > 0:
            return round(explicit_fee, 2), False

        if fee <= 0:
            return self.fallback_fee, True
        return round(fee, 2), False

    async def create_location(
        self,
        client_id: str,
        raw: str,
        reference: str,
        business_id: Optional[str] = None,
        sector: Optional[str] = None,
        delivery_fee: Optional[float] = None,
        is_favorite: bool = False,
        photo: Optional[bytes] = None,
    ) -> ClientLocation:
        """Parse the raw input, price it and store it (optionally with a photo)"""
        self._require_reference(reference)
        parsed = parse_location_input(raw)
        fee, out_of_zone = await self.resolve_fee(parsed, business_id, delivery_fee)

        location = ClientLocation(
            id=str(uuid.uuid4()),
            client_id=client_id,
            coordinates=parsed.value,
            reference=reference.strip(),
            delivery_fee=fee,
            sector=(sector or "").strip() or DEFAULT_SECTOR,
            is_favorite=is_favorite,
            out_of_zone=out_of_zone,
        )

        photo_url = await self._store_photo(client_id, location.id, photo)
        location.photo_url = photo_url
        try:
            created = await self.location_repo.create(location)
        except Exception:
            await self._discard_photo(photo_url)
            raise

        logger.info(f"📍 Location {created.id} saved for client {client_id} (fee {fee:.2f}, out_of_zone={out_of_zone})")
        return created

    async def update_location(
        self,
        location_id: str,
        raw: Optional[str] = None,
        reference: Optional[str] = None,
        business_id: Optional[str] = None,
        sector: Optional[str] = None,
        delivery_fee: Optional[float] = None,
        photo: Optional[bytes] = None,
    ) -> ClientLocation:
        existing = await self.location_repo.get_by_id(location_id)
        if not existing:
            raise NotFound("Location", location_id)

        patch = {}
        if reference is not None:
            self._require_reference(reference)
            patch["reference"] = reference.strip()
        if sector is not None:
            patch["sector"] = sector.strip() or DEFAULT_SECTOR

        if raw is not None:
            parsed = parse_location_input(raw)
            fee, out_of_zone = await self.resolve_fee(parsed, business_id, delivery_fee)
            patch.update(coordinates=parsed.value, delivery_fee=fee, out_of_zone=out_of_zone)
        elif delivery_fee is not None and delivery_fee > 0:
            patch.update(delivery_fee=round(delivery_fee, 2), out_of_zone=False)

        photo_url = await self._store_photo(existing.client_id, location_id, photo)
        if photo_url:
            patch["photo_url"] = photo_url
        try:
            updated = await self.location_repo.update(location_id, patch)
        except Exception:
            await self._discard_photo(photo_url)
            raise

        if photo_url and existing.photo_url:
            await self._discard_photo(existing.photo_url)
        return updated

    async def delete_location(self, location_id: str, drafts: Iterable[OrderDraft] = ()) -> bool:
        """Delete a location and clear it from any draft that had it selected"""
        existing = await self.location_repo.get_by_id(location_id)
        if not existing:
            return False

        deleted = await self.location_repo.delete(location_id)
        if deleted:
            for draft in drafts:
                if draft.forget_location(location_id):
                    logger.info(f"🧹 Draft {draft.id} lost its selected location {location_id}")
            if existing.photo_url:
                await self._discard_photo(existing.photo_url)
        return deleted

    async def set_favorite(self, client_id: str, location_id: str, favorite: bool = True) -> List[ClientLocation]:
        """Single transactional swap; on failure the previous favorite is untouched"""
        return await self.location_repo.set_favorite(client_id, location_id, favorite)

    @staticmethod
    def _require_reference(reference: Optional[str]) -> None:
        if not (reference or "").strip():
            raise ValidationFailed([ValidationIssue(field="reference", message="La referencia es obligatoria")])

    async def _store_photo(self, client_id: str, location_id: str, photo: Optional[bytes]) -> Optional[str]:
        if not photo:
            return None
        if self.image_storage is None:
            raise ValidationFailed([ValidationIssue(field="photo", message="No hay almacenamiento de imágenes configurado")])
        return await self.image_storage.upload(photo, f"locations/{client_id}/{location_id}-{uuid.uuid4().hex[:8]}.jpg")

    async def _discard_photo(self, url: Optional[str]) -> None:
        if not url or self.image_storage is None:
            return
        try:
            await self.image_storage.delete(url)
        except Exception as e:
            logger.error(f"❌ Could not delete image {url}: {e}")
