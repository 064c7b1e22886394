"""
Tokenman Protocols — Interfaces para os colaboradores externos.

O núcleo (estimador, emissor, ciclo de vida) não conhece ORM nem request:
recebe estes backends por injeção de dependência.

Implementações concretas vivem em adapters/:
- adapters/orm.py - ORM (Shop, Token, ShopSequence) e request.user
- adapters/memory.py - em memória, thread-safe (dev e testes)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


# =============================================================================
# Value types
# =============================================================================


@dataclass(frozen=True)
class Location:
    """Par latitude/longitude (WGS84)."""

    lat: float
    lng: float


@dataclass(frozen=True)
class Identity:
    """Chamador autenticado. subject_id é estável entre requests."""

    subject_id: str
    display_name: str = ""

    @property
    def is_valid(self) -> bool:
        return bool(self.subject_id and str(self.subject_id).strip())


@dataclass(frozen=True)
class ShopInfo:
    """Metadados da loja como o diretório os expõe."""

    id: str
    code: str
    name: str
    average_service_time_minutes: int | float
    is_active: bool
    latitude: float | None = None
    longitude: float | None = None

    @property
    def location(self) -> Location | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Location(lat=self.latitude, lng=self.longitude)


@dataclass
class NewToken:
    """Linha a ser inserida pelo store (ainda sem id)."""

    token_number: str
    shop_id: str
    customer_id: str
    customer_location: Location
    distance_meters: float
    traffic_duration_minutes: int
    service_time_minutes: int | float
    queue_wait_minutes: int | float
    backlog_count: int
    estimated_pickup_time: datetime
    created_at: datetime
    status: str = "pending"


@dataclass(frozen=True)
class TokenRecord:
    """Snapshot imutável de uma senha persistida."""

    id: str
    token_number: str
    shop_id: str
    customer_id: str
    customer_location: Location
    distance_meters: float
    traffic_duration_minutes: int
    estimated_pickup_time: datetime
    status: str
    created_at: datetime
    backlog_count: int = 0
    preparing_at: datetime | None = None
    served_at: datetime | None = None
    cancelled_at: datetime | None = None
    extra: dict = field(default_factory=dict)


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class ShopDirectory(Protocol):
    """Diretório de lojas (somente leitura do ponto de vista do núcleo)."""

    def get_shop(self, shop_id: str) -> ShopInfo | None:
        """Retorna a loja ou None se não existir."""
        ...


@runtime_checkable
class IdentityProvider(Protocol):
    """Resolve o chamador a partir do request de transporte."""

    def identify(self, request: Any) -> Identity | None:
        """Retorna a identidade autenticada ou None."""
        ...


@runtime_checkable
class TokenStore(Protocol):
    """
    Store durável de senhas.

    Contratos:
    - insert é condicional à inexistência do token_number (unique constraint)
      e levanta TokenNumberConflict quando o número já existe;
    - compare_and_set_status só aplica a mudança se o status atual ainda é
      `expected`, e aplica a política de acesso do store (levanta
      Unauthorized com code="forbidden" quando o ator não pode mutar);
    - get_token retorna None para senhas invisíveis ao ator.
    """

    def count_active(self, shop_id: str) -> int:
        """Quantidade de senhas pending/preparing da loja."""
        ...

    def insert(self, token: NewToken, *, actor: Identity) -> TokenRecord:
        """Insere a senha; all-or-nothing."""
        ...

    def next_sequence(self, shop_id: str) -> int:
        """Próximo valor da sequência monotônica da loja."""
        ...

    def get_token(self, token_id: str, *, actor: Identity) -> TokenRecord | None:
        """Busca senha visível ao ator."""
        ...

    def compare_and_set_status(
        self,
        token_id: str,
        *,
        actor: Identity,
        expected: str,
        new: str,
        at: datetime,
    ) -> TokenRecord | None:
        """Aplica expected → new; None se o status mudou no meio do caminho."""
        ...
