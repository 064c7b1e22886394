"""
Tokenman In-Memory Adapters — Diretório e store sem banco de dados.

Úteis em desenvolvimento local e testes: todo o estado fica na instância,
protegido por um lock, então o store pode ser compartilhado entre threads.

Usage::

    from tokenman.adapters.memory import InMemoryShopDirectory, InMemoryTokenStore
    from tokenman.protocols import ShopInfo
    from tokenman.services import TokenIssuer

    directory = InMemoryShopDirectory([ShopInfo(id="s1", code="S1", name="Shop", average_service_time_minutes=5, is_active=True)])
    store = InMemoryTokenStore(managers={"s1": {"owner-1"}})
    issuer = TokenIssuer(directory, store)
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime

from tokenman.exceptions import InvalidTransition, TokenNumberConflict, Unauthorized
from tokenman.protocols import Identity, NewToken, ShopInfo, TokenRecord
from tokenman.status import ACTIVE_STATUSES, TokenStatus, can_transition

logger = logging.getLogger(__name__)

_TIMESTAMP_FIELDS = {
    TokenStatus.PREPARING: "preparing_at",
    TokenStatus.SERVED: "served_at",
    TokenStatus.CANCELLED: "cancelled_at",
}


class InMemoryShopDirectory:
    """Diretório de lojas em um dict."""

    def __init__(self, shops=()) -> None:
        self._lock = threading.Lock()
        self._shops: dict[str, ShopInfo] = {s.id: s for s in shops}

    def add(self, shop: ShopInfo) -> None:
        with self._lock:
            self._shops[shop.id] = shop

    def get_shop(self, shop_id: str) -> ShopInfo | None:
        with self._lock:
            return self._shops.get(shop_id)


class InMemoryTokenStore:
    """
    Store de senhas com o mesmo contrato do store do ORM.

    - insert: token_number duplicado levanta TokenNumberConflict
    - compare_and_set_status: só aplica se o status ainda for `expected`
    - managers: shop_id → subject_ids que operam as senhas da loja
    """

    def __init__(self, managers: dict[str, set[str]] | None = None) -> None:
        self._lock = threading.Lock()
        self._managers = {k: set(v) for k, v in (managers or {}).items()}
        self._tokens: dict[str, TokenRecord] = {}
        self._numbers: set[str] = set()
        self._sequences: dict[str, int] = {}
        self.events: list[dict] = []
        self.insert_attempts = 0

    def _can_manage(self, actor: Identity, shop_id: str) -> bool:
        return actor.subject_id in self._managers.get(shop_id, set())

    def all_tokens(self) -> list[TokenRecord]:
        with self._lock:
            return list(self._tokens.values())

    def count_active(self, shop_id: str) -> int:
        with self._lock:
            return sum(
                1 for t in self._tokens.values() if t.shop_id == shop_id and t.status in ACTIVE_STATUSES
            )

    def insert(self, token: NewToken, *, actor: Identity) -> TokenRecord:
        if token.customer_id != actor.subject_id:
            raise Unauthorized(code="forbidden", message="Senhas só podem ser emitidas para o próprio cliente")
        with self._lock:
            self.insert_attempts += 1
            if token.token_number in self._numbers:
                raise TokenNumberConflict(token.token_number)
            record = TokenRecord(
                id=str(uuid.uuid4()),
                token_number=token.token_number,
                shop_id=token.shop_id,
                customer_id=token.customer_id,
                customer_location=token.customer_location,
                distance_meters=token.distance_meters,
                traffic_duration_minutes=token.traffic_duration_minutes,
                estimated_pickup_time=token.estimated_pickup_time,
                status=token.status,
                created_at=token.created_at,
                backlog_count=token.backlog_count,
            )
            self._numbers.add(record.token_number)
            self._tokens[record.id] = record
            self.events.append({"token_id": record.id, "type": "created", "actor": actor.subject_id})
            return record

    def next_sequence(self, shop_id: str) -> int:
        with self._lock:
            self._sequences[shop_id] = self._sequences.get(shop_id, 0) + 1
            return self._sequences[shop_id]

    def get_token(self, token_id: str, *, actor: Identity) -> TokenRecord | None:
        with self._lock:
            record = self._tokens.get(token_id)
        if record is None:
            return None
        if record.customer_id != actor.subject_id and not self._can_manage(actor, record.shop_id):
            return None
        return record

    def compare_and_set_status(
        self,
        token_id: str,
        *,
        actor: Identity,
        expected: str,
        new: str,
        at: datetime,
    ) -> TokenRecord | None:
        if not can_transition(expected, new):
            raise InvalidTransition(message=f"Transição {expected} → {new} não permitida")
        with self._lock:
            record = self._tokens.get(token_id)
            if record is None:
                return None
            allowed = self._can_manage(actor, record.shop_id) or (
                new == TokenStatus.CANCELLED and record.customer_id == actor.subject_id
            )
            if not allowed:
                raise Unauthorized(code="forbidden", message="Ator sem permissão para alterar senhas desta loja")
            if record.status != expected:
                return None
            changes = {"status": new}
            ts_field = _TIMESTAMP_FIELDS.get(new)
            if ts_field and getattr(record, ts_field) is None:
                changes[ts_field] = at
            record = replace(record, **changes)
            self._tokens[token_id] = record
            self.events.append(
                {"token_id": token_id, "type": "status_changed", "actor": actor.subject_id, "old_status": expected, "new_status": new}
            )
            return record
