"""
EtaEstimator — Distância + tempo de atendimento + fila → horário de retirada.

Função pura: sem IO, sem estado compartilhado, sem relógio ambiente.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from django.utils import timezone

from tokenman.exceptions import InvalidInput
from tokenman.geo import is_finite_number


# ~20 km/h efetivos no trânsito: 3 minutos por quilômetro
TRAFFIC_MINUTES_PER_KM = 3


@dataclass(frozen=True)
class EtaEstimate:
    """Resultado da estimativa. `now` é o instante usado, para auditoria."""

    traffic_minutes: int
    service_minutes: int | float
    wait_minutes: int | float
    total_minutes: int | float
    now: datetime
    pickup_time: datetime


class EtaEstimator:
    """
    Estimador de horário de retirada.

    - traffic = ceil(distance_meters / 1000 * 3)
    - wait = backlog_count * average_service_time_minutes
    - total = traffic + average_service_time_minutes + wait
    - pickup_time = now + total
    """

    @staticmethod
    def traffic_minutes(distance_meters) -> int:
        """Minutos de deslocamento, arredondados para cima (aritmética decimal exata)."""
        km = Decimal(str(distance_meters)) / 1000
        return math.ceil(km * TRAFFIC_MINUTES_PER_KM)

    @staticmethod
    def compute(
        distance_meters,
        average_service_time_minutes,
        backlog_count: int,
        now: datetime,
    ) -> EtaEstimate:
        """
        Calcula a estimativa.

        Args:
            distance_meters: Distância do cliente até a loja (>= 0)
            average_service_time_minutes: Tempo de preparo de um pedido (> 0)
            backlog_count: Senhas não terminais na loja (inteiro >= 0)
            now: Instante de referência, timezone-aware

        Returns:
            EtaEstimate

        Raises:
            InvalidInput: Se algum argumento for inválido
        """
        if not is_finite_number(distance_meters) or distance_meters < 0:
            raise InvalidInput(
                code="invalid_distance",
                message="distance_meters deve ser um número >= 0",
                context={"distance_meters": distance_meters},
            )
        if not is_finite_number(average_service_time_minutes) or average_service_time_minutes <= 0:
            raise InvalidInput(
                code="invalid_service_time",
                message="average_service_time_minutes deve ser um número > 0",
                context={"average_service_time_minutes": average_service_time_minutes},
            )
        if isinstance(backlog_count, bool) or not isinstance(backlog_count, int) or backlog_count < 0:
            raise InvalidInput(
                code="invalid_backlog",
                message="backlog_count deve ser um inteiro >= 0",
                context={"backlog_count": backlog_count},
            )
        if not isinstance(now, datetime) or timezone.is_naive(now):
            raise InvalidInput(
                code="invalid_clock",
                message="now deve ser um datetime timezone-aware",
                context={"now": str(now)},
            )

        traffic = EtaEstimator.traffic_minutes(distance_meters)
        wait = backlog_count * average_service_time_minutes
        total = traffic + average_service_time_minutes + wait
        try:
            pickup_time = now + timedelta(minutes=float(total))
        except (OverflowError, ValueError):
            # Finito, mas além do maior datetime representável
            raise InvalidInput(
                code="invalid_distance",
                message="Estimativa fora do intervalo de datas suportado",
                context={"distance_meters": distance_meters, "total_minutes": str(total)},
            )

        return EtaEstimate(
            traffic_minutes=traffic,
            service_minutes=average_service_time_minutes,
            wait_minutes=wait,
            total_minutes=total,
            now=now,
            pickup_time=pickup_time,
        )
