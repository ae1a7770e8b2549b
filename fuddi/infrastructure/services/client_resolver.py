"""
Client Resolver Service
Finds the customer of a manual order by phone or by name, with a
debounced search that never lets a stale response overwrite a newer one
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ...domain.entities import Client, ClientLocation, ResolveResult, ValidationIssue
from ...domain.exceptions import Conflict, ValidationFailed
from ...domain.order_draft import OrderDraft
from ...domain.phone import (
    looks_like_phone, normalize_ecuadorian_phone, phone_lookup_candidates,
    phone_validation_message,
)
from ...domain.repositories import IClientRepository, ILocationRepository

logger = logging.getLogger(__name__)

MIN_NAME_QUERY = 2
MAX_NAME_RESULTS = 10


class CustomerSearch(BaseModel):
    """What a debounced search produced for the draft"""
    generation: int
    matches: List[Client] = []
    exact: bool = False
    selected_client_id: Optional[str] = None
    prefill_phone: Optional[str] = None
    prefill_name: Optional[str] = None


def rank_by_name(clients: List[Client], term: str) -> List[Client]:
    """Names starting with the term first, then alphabetical"""
    lowered = term.lower()
    return sorted(clients, key=lambda c: (not c.name.lower().startswith(lowered), c.name.lower()))


class ClientResolver:
    """Client lookup and creation for the manual order workflow"""

    def __init__(self, client_repo: IClientRepository, location_repo: Optional[ILocationRepository] = None):
        self.client_repo = client_repo
        self.location_repo = location_repo

    async def resolve(self, query: str) -> ResolveResult:
        """
        Phone-shaped queries try each phone variant until one matches;
        anything else is a name search. Backend errors give an empty result.
        """
        text = (query or "").strip()
        if not text:
            return ResolveResult()

        try:
            if looks_like_phone(text):
                for candidate in phone_lookup_candidates(text):
                    client = await self.client_repo.find_by_phone(candidate)
                    if client:
                        return ResolveResult(matches=[client], exact=True)
                return ResolveResult()

            if len(text) < MIN_NAME_QUERY:
                return ResolveResult()

            clients = await self.client_repo.search_by_name(text)
            return ResolveResult(matches=rank_by_name(clients, text)[:MAX_NAME_RESULTS])

        except Exception as e:
            logger.error(f"❌ Client lookup failed for '{text}': {e}")
            return ResolveResult()

    async def load_locations(self, client_id: str) -> List[ClientLocation]:
        if self.location_repo is None:
            return []
        try:
            return await self.location_repo.list_by_client(client_id)
        except Exception as e:
            logger.error(f"❌ Could not load locations for client {client_id}: {e}")
            return []

    async def select_client(self, draft: OrderDraft, client: Client) -> OrderDraft:
        """Attach a client to the draft together with its saved locations"""
        locations = await self.load_locations(client.id)
        draft.select_client(client, locations)
        return draft

    async def search_for_draft(
        self,
        draft: OrderDraft,
        query: str,
        debounce_seconds: float = 0.0,
    ) -> Optional[CustomerSearch]:
        """
        Debounced search bound to a draft.

        Returns None when a newer search on the same draft started while
        this one was waiting or in flight.
        """
        generation = draft.next_search_generation()
        if debounce_seconds > 0:
            await asyncio.sleep(debounce_seconds)
            if draft.search_generation != generation:
                logger.debug(f"⏭️ Search '{query}' superseded before lookup")
                return None

        result = await self.resolve(query)
        if draft.search_generation != generation:
            logger.debug(f"⏭️ Dropping stale result for '{query}'")
            return None

        outcome = CustomerSearch(generation=generation, matches=result.matches, exact=result.exact)

        if result.exact:
            client = result.matches[0]
            locations = await self.load_locations(client.id)
            if draft.search_generation != generation:
                return None
            draft.select_client(client, locations)
            outcome.selected_client_id = client.id
        elif not result.matches:
            text = (query or "").strip()
            if looks_like_phone(text):
                outcome.prefill_phone = normalize_ecuadorian_phone(text)
            else:
                outcome.prefill_name = text

        return outcome

    async def create_client(self, phone: str, name: str, email: Optional[str] = None) -> Client:
        """Register a new client with a canonical phone"""
        issues = []
        message = phone_validation_message(phone)
        if message:
            issues.append(ValidationIssue(field="phone", message=message))
        if not (name or "").strip():
            issues.append(ValidationIssue(field="name", message="El nombre del cliente es obligatorio"))
        if issues:
            raise ValidationFailed(issues)

        normalized = normalize_ecuadorian_phone(phone)
        if await self.client_repo.find_by_phone(normalized):
            raise Conflict(f"Ya existe un cliente con el celular {normalized}")

        client = await self.client_repo.create(Client(phone=normalized, name=name.strip(), email=email))
        logger.info(f"👤 Client created: {client.id} ({client.phone})")
        return client

    async def update_client(self, client_id: str, patch: Dict[str, Any]) -> Client:
        changes = {k: v for k, v in patch.items() if v is not None}

        if "phone" in changes:
            message = phone_validation_message(changes["phone"])
            if message:
                raise ValidationFailed([ValidationIssue(field="phone", message=message)])
            changes["phone"] = normalize_ecuadorian_phone(changes["phone"])
            existing = await self.client_repo.find_by_phone(changes["phone"])
            if existing and existing.id != client_id:
                raise Conflict(f"Ya existe un cliente con el celular {changes['phone']}")

        if "name" in changes:
            if not changes["name"].strip():
                raise ValidationFailed([ValidationIssue(field="name", message="El nombre del cliente es obligatorio")])
            changes["name"] = changes["name"].strip()

        return await self.client_repo.update(client_id, changes)
