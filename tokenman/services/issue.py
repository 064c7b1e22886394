"""
TokenIssuer — Emite senhas numeradas de forma única sob concorrência.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from django.utils import timezone

from tokenman.conf import build_backend, get_tokenman_setting
from tokenman.exceptions import (
    InvalidInput,
    ShopInactive,
    ShopNotFound,
    TokenCreationFailed,
    TokenNumberConflict,
    Unauthorized,
)
from tokenman.geo import haversine_meters, is_finite_number, is_valid_coordinate
from tokenman.ids import format_sequence_number, generate_token_number
from tokenman.protocols import Identity, Location, NewToken, ShopDirectory, ShopInfo, TokenRecord, TokenStore
from tokenman.services.backlog import QueueBacklogReader
from tokenman.services.downstream import downstream
from tokenman.services.eta import EtaEstimate, EtaEstimator
from tokenman.status import TokenStatus


logger = logging.getLogger(__name__)

NUMBER_STRATEGIES = ("random", "sequence")


@dataclass(frozen=True)
class IssueResult:
    """Senha emitida + posição informativa na fila."""

    token: TokenRecord
    queue_position: int
    estimate: EtaEstimate

    def as_response(self) -> dict:
        return {
            "token_id": self.token.id,
            "token_number": self.token.token_number,
            "estimated_pickup_time": self.token.estimated_pickup_time.isoformat(),
            "traffic_duration_minutes": self.token.traffic_duration_minutes,
            "queue_position": self.queue_position,
            "status": self.token.status,
            "created_at": self.token.created_at.isoformat(),
        }


def require_identity(identity) -> Identity:
    """Rejeita chamador ausente ou sem subject_id."""
    if identity is None or not getattr(identity, "is_valid", False):
        raise Unauthorized(code="unauthorized", message="Identidade do chamador ausente ou inválida")
    return identity


def parse_location(value) -> Location:
    """Aceita Location ou {"lat": .., "lng": ..}; valida o par."""
    if isinstance(value, Location):
        lat, lng = value.lat, value.lng
    elif isinstance(value, dict):
        lat, lng = value.get("lat"), value.get("lng")
    else:
        lat = lng = None
    if not is_valid_coordinate(lat, lng):
        raise InvalidInput(
            code="invalid_location",
            message="customer_location deve ter lat em [-90, 90] e lng em [-180, 180]",
            context={"customer_location": value if isinstance(value, dict) else str(value)},
        )
    return Location(lat=float(lat), lng=float(lng))


class TokenIssuer:
    """
    Orquestra a emissão de uma senha.

    Pipeline:
    1. Autenticação (Unauthorized)
    2. Loja no diretório (ShopNotFound / ShopInactive)
    3. Validação de distância e coordenadas (InvalidInput)
    4. Backlog atual (QueueBacklogReader)
    5. Estimativa (EtaEstimator)
    6. Número candidato
    7. Insert condicional; em colisão volta ao 6 (até max_attempts)
    8. Retorna senha + queue_position = backlog + 1

    Nenhuma escrita acontece antes do passo 7.
    """

    def __init__(
        self,
        directory: ShopDirectory,
        store: TokenStore,
        *,
        max_attempts: int | None = None,
        number_strategy: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.directory = directory
        self.store = store
        self.backlog = QueueBacklogReader(store)
        self.max_attempts = max_attempts or get_tokenman_setting("ISSUE_MAX_ATTEMPTS")
        self.number_strategy = number_strategy or get_tokenman_setting("TOKEN_NUMBER_STRATEGY")
        if self.number_strategy not in NUMBER_STRATEGIES:
            raise ValueError(f"Unknown TOKEN_NUMBER_STRATEGY '{self.number_strategy}'")
        self.clock = clock or timezone.now

    @classmethod
    def from_settings(cls) -> TokenIssuer:
        return cls(
            directory=build_backend("SHOP_DIRECTORY"),
            store=build_backend("TOKEN_STORE"),
        )

    # ------------------------------------------------------------------ steps

    def get_active_shop(self, shop_id) -> ShopInfo:
        if not shop_id:
            raise ShopNotFound(message="Loja não encontrada", context={"shop_id": shop_id})
        with downstream("directory.get_shop", shop_id=str(shop_id)):
            shop = self.directory.get_shop(str(shop_id))
        if shop is None:
            raise ShopNotFound(message=f"Loja não encontrada: {shop_id}", context={"shop_id": str(shop_id)})
        if not shop.is_active:
            raise ShopInactive(
                message=f"Loja '{shop.name}' não está aceitando senhas",
                context={"shop_id": shop.id},
            )
        return shop

    @staticmethod
    def resolve_distance(shop: ShopInfo, location: Location, distance_meters) -> float:
        if distance_meters is None:
            # Sem distância informada: deriva da localização da loja, se houver
            if shop.location is None:
                raise InvalidInput(
                    code="invalid_distance",
                    message="distance_meters é obrigatório para lojas sem localização",
                    context={"shop_id": shop.id},
                )
            return float(round(haversine_meters(location.lat, location.lng, shop.latitude, shop.longitude)))
        if not is_finite_number(distance_meters) or distance_meters < 0:
            raise InvalidInput(
                code="invalid_distance",
                message="distance_meters deve ser um número >= 0",
                context={"distance_meters": str(distance_meters)},
            )
        return float(distance_meters)

    def next_token_number(self, shop: ShopInfo, now: datetime) -> str:
        if self.number_strategy == "sequence":
            with downstream("store.next_sequence", failure=TokenCreationFailed, failure_code="store_write_failed", shop_id=shop.id):
                value = self.store.next_sequence(shop.id)
            return format_sequence_number(shop.code, value)
        return generate_token_number(now)

    # ------------------------------------------------------------------ issue

    def issue(
        self,
        identity: Identity | None,
        shop_id,
        customer_location,
        distance_meters=None,
        *,
        now: datetime | None = None,
    ) -> IssueResult:
        """
        Emite uma senha.

        Args:
            identity: Chamador autenticado
            shop_id: ID da loja
            customer_location: Location ou {"lat", "lng"}
            distance_meters: Distância até a loja; derivada se None e a loja tiver localização
            now: Instante de referência (default: relógio do emissor)

        Returns:
            IssueResult

        Raises:
            Unauthorized, ShopNotFound, ShopInactive, InvalidInput,
            TokenCreationFailed, Timeout, UpstreamUnavailable
        """
        identity = require_identity(identity)
        shop = self.get_active_shop(shop_id)
        location = parse_location(customer_location)
        distance = self.resolve_distance(shop, location, distance_meters)

        backlog_count = self.backlog.count(shop.id)
        now = now or self.clock()
        estimate = EtaEstimator.compute(
            distance_meters=distance,
            average_service_time_minutes=shop.average_service_time_minutes,
            backlog_count=backlog_count,
            now=now,
        )

        for attempt in range(1, self.max_attempts + 1):
            number = self.next_token_number(shop, now)
            candidate = NewToken(
                token_number=number,
                shop_id=shop.id,
                customer_id=str(identity.subject_id),
                customer_location=location,
                distance_meters=distance,
                traffic_duration_minutes=estimate.traffic_minutes,
                service_time_minutes=estimate.service_minutes,
                queue_wait_minutes=estimate.wait_minutes,
                backlog_count=backlog_count,
                estimated_pickup_time=estimate.pickup_time,
                created_at=estimate.now,
                status=TokenStatus.PENDING,
            )
            try:
                with downstream(
                    "store.insert",
                    failure=TokenCreationFailed,
                    failure_code="store_write_failed",
                    shop_id=shop.id,
                ):
                    record = self.store.insert(candidate, actor=identity)
            except TokenNumberConflict:
                logger.warning(
                    "Token number collision",
                    extra={"shop_id": shop.id, "token_number": number, "attempt": attempt},
                )
                continue

            logger.info(
                "Token issued",
                extra={
                    "shop_id": shop.id,
                    "token_number": record.token_number,
                    "distance_meters": distance,
                    "traffic_minutes": estimate.traffic_minutes,
                    "queue_wait_minutes": estimate.wait_minutes,
                    "total_minutes": estimate.total_minutes,
                    "attempt": attempt,
                },
            )
            return IssueResult(token=record, queue_position=backlog_count + 1, estimate=estimate)

        raise TokenCreationFailed(
            code="number_exhausted",
            message="Não foi possível gerar um número de senha único",
            context={"shop_id": shop.id, "attempts": self.max_attempts},
        )
