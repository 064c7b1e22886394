"""
Tokenman Django Adapters — Diretório, identidade e store sobre o ORM.

Política de acesso (equivalente às policies de linha do banco):
- inserir: só o próprio cliente (customer_id == ator)
- ler: o cliente dono da senha, dono/atendentes da loja, superusuários
- mudar status: dono/atendentes da loja e superusuários; o cliente só cancela
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, connection, transaction

from tokenman.conf import get_tokenman_setting
from tokenman.exceptions import InvalidTransition, TokenNumberConflict, Unauthorized
from tokenman.models import Shop, ShopSequence, Token, TokenEvent
from tokenman.protocols import Identity, NewToken, ShopInfo, TokenRecord
from tokenman.status import ACTIVE_STATUSES, TokenStatus, can_transition


logger = logging.getLogger(__name__)


def apply_statement_timeout(timeout_seconds: float | None) -> None:
    """
    Prazo da transação corrente (SET LOCAL statement_timeout, PostgreSQL).

    Deve rodar dentro de transaction.atomic(). No SQLite vale o busy timeout
    configurado em DATABASES.
    """
    if connection.vendor != "postgresql" or not timeout_seconds:
        return
    millis = int(timeout_seconds * 1000)
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL statement_timeout = {millis}")


def _default_timeout(timeout_seconds: float | None) -> float | None:
    if timeout_seconds is None:
        return get_tokenman_setting("DOWNSTREAM_TIMEOUT_SECONDS")
    return timeout_seconds


class DjangoShopDirectory:
    """Lê lojas do model Shop."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = _default_timeout(timeout_seconds)

    def get_shop(self, shop_id: str) -> ShopInfo | None:
        try:
            with transaction.atomic():
                apply_statement_timeout(self.timeout_seconds)
                shop = Shop.objects.get(pk=shop_id)
        except (Shop.DoesNotExist, DjangoValidationError, ValueError):
            return None
        return ShopInfo(
            id=str(shop.pk),
            code=shop.code,
            name=shop.name,
            average_service_time_minutes=shop.average_service_time,
            is_active=shop.is_active,
            latitude=shop.location_lat,
            longitude=shop.location_lng,
        )


class DjangoIdentityProvider:
    """Identidade a partir de request.user (sessão, basic auth, etc)."""

    def identify(self, request) -> Identity | None:
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated or not user.is_active:
            return None
        return Identity(subject_id=str(user.pk), display_name=user.get_username())


class DjangoTokenStore:
    """
    Store de senhas sobre Token/TokenEvent/ShopSequence.

    - insert: unique constraint em token_number; IntegrityError vira
      TokenNumberConflict quando o número já existe
    - compare_and_set_status: UPDATE ... WHERE status = expected
    - prazo: statement_timeout (PostgreSQL) por transação; no SQLite vale o
      busy timeout configurado em DATABASES
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = _default_timeout(timeout_seconds)

    def _apply_timeout(self) -> None:
        apply_statement_timeout(self.timeout_seconds)

    # ------------------------------------------------------------------ policy

    @staticmethod
    def _is_superuser(actor: Identity) -> bool:
        User = get_user_model()
        try:
            return User.objects.filter(pk=actor.subject_id, is_superuser=True, is_active=True).exists()
        except (DjangoValidationError, ValueError):
            return False

    def _can_manage(self, actor: Identity, shop: Shop) -> bool:
        try:
            if shop.is_managed_by(actor.subject_id):
                return True
        except (DjangoValidationError, ValueError):
            return False
        return self._is_superuser(actor)

    def _can_view(self, actor: Identity, token: Token) -> bool:
        if token.customer_id == actor.subject_id:
            return True
        return self._can_manage(actor, token.shop)

    def _can_transition(self, actor: Identity, token: Token, new: str) -> bool:
        if self._can_manage(actor, token.shop):
            return True
        return new == TokenStatus.CANCELLED and token.customer_id == actor.subject_id

    # ------------------------------------------------------------------ reads

    def count_active(self, shop_id: str) -> int:
        with transaction.atomic():
            self._apply_timeout()
            return Token.objects.filter(shop_id=shop_id, status__in=ACTIVE_STATUSES).count()

    def get_token(self, token_id: str, *, actor: Identity) -> TokenRecord | None:
        try:
            with transaction.atomic():
                self._apply_timeout()
                token = Token.objects.select_related("shop").get(pk=token_id)
        except (Token.DoesNotExist, DjangoValidationError, ValueError):
            return None
        if not self._can_view(actor, token):
            return None
        return token.to_record()

    # ------------------------------------------------------------------ writes

    def insert(self, token: NewToken, *, actor: Identity) -> TokenRecord:
        if token.customer_id != actor.subject_id:
            raise Unauthorized(
                code="forbidden",
                message="Senhas só podem ser emitidas para o próprio cliente",
                context={"customer_id": token.customer_id},
            )
        try:
            with transaction.atomic():
                self._apply_timeout()
                obj = Token.objects.create(
                    token_number=token.token_number,
                    shop_id=token.shop_id,
                    customer_id=token.customer_id,
                    customer_location_lat=token.customer_location.lat,
                    customer_location_lng=token.customer_location.lng,
                    distance_meters=token.distance_meters,
                    traffic_duration_minutes=token.traffic_duration_minutes,
                    service_time_minutes=token.service_time_minutes,
                    queue_wait_minutes=token.queue_wait_minutes,
                    backlog_count=token.backlog_count,
                    estimated_pickup_time=token.estimated_pickup_time,
                    status=token.status,
                    created_at=token.created_at,
                )
                TokenEvent.objects.create(
                    token=obj,
                    type="created",
                    actor=actor.subject_id,
                    payload={
                        "backlog_count": token.backlog_count,
                        "traffic_duration_minutes": token.traffic_duration_minutes,
                        "queue_wait_minutes": token.queue_wait_minutes,
                    },
                )
        except IntegrityError as exc:
            if Token.objects.filter(token_number=token.token_number).exists():
                raise TokenNumberConflict(token.token_number) from exc
            raise
        return obj.to_record()

    def next_sequence(self, shop_id: str) -> int:
        with transaction.atomic():
            self._apply_timeout()
            seq, _created = ShopSequence.objects.select_for_update().get_or_create(
                shop_id=shop_id,
                defaults={"last_value": 0},
            )
            seq.last_value += 1
            seq.save(update_fields=["last_value"])
            return seq.last_value

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
            raise InvalidTransition(
                code="invalid_transition",
                message=f"Transição {expected} → {new} não permitida",
                context={"current_status": expected, "requested_status": new},
            )

        with transaction.atomic():
            self._apply_timeout()
            try:
                token = Token.objects.select_for_update().get(pk=token_id)
            except (Token.DoesNotExist, DjangoValidationError, ValueError):
                return None

            if not self._can_transition(actor, token, new):
                raise Unauthorized(
                    code="forbidden",
                    message="Ator sem permissão para alterar senhas desta loja",
                    context={"token_id": str(token.pk), "shop_id": str(token.shop_id)},
                )

            changes = {"status": new, "updated_at": at}
            ts_field = Token.STATUS_TIMESTAMP_FIELDS.get(new)
            if ts_field and getattr(token, ts_field) is None:
                changes[ts_field] = at

            updated = Token.objects.filter(pk=token.pk, status=expected).update(**changes)
            if not updated:
                return None

            TokenEvent.objects.create(
                token=token,
                type="status_changed",
                actor=actor.subject_id,
                payload={"old_status": expected, "new_status": new},
            )
            token.refresh_from_db()
        return token.to_record()
