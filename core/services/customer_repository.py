from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from core.models.common import gen_id, utc_now
from core.models.customer import Customer, CustomerDraft
from core.storage.record_store import RecordStore

logger = logging.getLogger(__name__)

_IMMUTABLE = ("id", "created_at")

Payload = Union[BaseModel, Mapping[str, Any]]


class CustomerNotFoundError(LookupError):
    def __init__(self, customer_id: str):
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


def _fields_of(payload: Payload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        data = payload.model_dump()
    else:
        data = dict(payload)
    for k in _IMMUTABLE:
        data.pop(k, None)
    return data


def _phone_digits(phone: str) -> str:
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    return f"+{digits}" if phone.startswith("+") else digits


class CustomerRepository:
    """
    Opérations métier sur les clients au-dessus d'un RecordStore.
    - create/update/delete passent par un seul verrou : les séquences
      lecture/modification/écriture de l'index ne s'entrelacent jamais
    - index ordonné du plus récent au plus ancien
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utc_now) -> None:
        self.store = store
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_created: Optional[datetime] = None

    def _stamp(self) -> str:
        now = self._clock()
        # created_at strictement croissant dans l'ordre des appels
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now.isoformat(timespec="microseconds")

    async def _new_id(self) -> str:
        cid = gen_id()
        while await self.store.get(cid) is not None:
            cid = gen_id()
        return cid

    # ---------------- CRUD ---------------- #

    async def create(self, draft: Payload) -> Customer:
        data = CustomerDraft.model_validate(_fields_of(draft)).model_dump()
        async with self._lock:
            customer = Customer(id=await self._new_id(), created_at=self._stamp(), **data)
            await self.store.put(customer.id, customer.model_dump(mode="json"))
            index = await self.store.read_index()
            index.insert(0, customer.id)
            await self.store.write_index(index)
        logger.info("Customer %s created", customer.id)
        return customer

    async def update(self, customer_id: str, patch: Payload) -> Customer:
        changes = _fields_of(patch)
        async with self._lock:
            existing = await self.store.get(customer_id)
            if existing is None:
                raise CustomerNotFoundError(customer_id)
            merged = {**existing, **changes, "id": customer_id, "created_at": existing.get("created_at")}
            customer = Customer.model_validate(merged)
            await self.store.put(customer_id, customer.model_dump(mode="json"))
        logger.info("Customer %s updated (%s)", customer_id, ", ".join(sorted(changes)) or "no change")
        return customer

    async def get(self, customer_id: str) -> Optional[Customer]:
        record = await self.store.get(customer_id)
        if record is None:
            return None
        return Customer.model_validate(record)

    async def get_all(self) -> List[Customer]:
        async with self._lock:
            index = await self.store.read_index()
            out: List[Customer] = []
            for cid in index:
                record = await self.store.get(cid)
                if record is None:
                    logger.warning("Index entry %s has no record, skipped", cid)
                    continue
                try:
                    out.append(Customer.model_validate(record))
                except ValidationError:
                    # On ignore les entrées invalides pour ne pas casser l'UI
                    logger.warning("Stored customer %s is invalid, skipped", cid)
            return out

    async def delete(self, customer_id: str) -> None:
        async with self._lock:
            await self.store.remove(customer_id)
            index = await self.store.read_index()
            if customer_id in index:
                await self.store.write_index([k for k in index if k != customer_id])
                logger.info("Customer %s deleted", customer_id)

    # ---------------- Recherches ---------------- #

    async def email_exists(self, email: Optional[str]) -> bool:
        if not email or not email.strip():
            return False
        wanted = email.strip().lower()
        for c in await self.get_all():
            if c.email and c.email.lower() == wanted:
                return True
        return False

    async def phone_exists(self, phone: Optional[str]) -> bool:
        if not phone or not phone.strip():
            return False
        wanted = _phone_digits(phone)
        for c in await self.get_all():
            if c.phone and _phone_digits(c.phone) == wanted:
                return True
        return False
