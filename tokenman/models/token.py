from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from tokenman.protocols import Location, TokenRecord
from tokenman.status import ACTIVE_STATUSES, TERMINAL_STATUSES, TRANSITIONS, TokenStatus


class Token(models.Model):
    """
    Senha de retirada (imutável exceto pelo status).

    Criada uma única vez pelo TokenIssuer; depois disso só o TokenLifecycle
    altera o status. Nunca é apagada.

    Status:
    - pending: emitida, aguardando preparo
    - preparing: em preparo
    - served: retirada pelo cliente (terminal)
    - cancelled: cancelada (terminal)

    Fluxo: pending → preparing → served; pending|preparing → cancelled.

    Auditoria:
    created_at é o mesmo "now" usado na estimativa, então
    estimated_pickup_time - created_at reproduz o cálculo. backlog_count,
    service_time_minutes e queue_wait_minutes guardam os insumos.
    """

    Status = TokenStatus

    STATUS_PENDING = Status.PENDING
    STATUS_PREPARING = Status.PREPARING
    STATUS_SERVED = Status.SERVED
    STATUS_CANCELLED = Status.CANCELLED

    DEFAULT_TRANSITIONS = TRANSITIONS
    TERMINAL_STATUSES = TERMINAL_STATUSES
    ACTIVE_STATUSES = ACTIVE_STATUSES

    # Mapeamento status → campo timestamp
    STATUS_TIMESTAMP_FIELDS = {
        STATUS_PREPARING: "preparing_at",
        STATUS_SERVED: "served_at",
        STATUS_CANCELLED: "cancelled_at",
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    token_number = models.CharField(_("número"), max_length=64, unique=True)
    shop = models.ForeignKey(
        "tokenman.Shop",
        verbose_name=_("loja"),
        on_delete=models.PROTECT,
        related_name="tokens",
    )
    customer_id = models.CharField(_("cliente"), max_length=64, db_index=True)

    customer_location_lat = models.FloatField(_("latitude do cliente"))
    customer_location_lng = models.FloatField(_("longitude do cliente"))
    distance_meters = models.FloatField(_("distância (m)"))

    traffic_duration_minutes = models.PositiveIntegerField(_("deslocamento (min)"))
    service_time_minutes = models.FloatField(_("atendimento (min)"))
    queue_wait_minutes = models.FloatField(_("espera na fila (min)"))
    backlog_count = models.PositiveIntegerField(_("fila na emissão"), default=0)
    estimated_pickup_time = models.DateTimeField(_("retirada estimada"))

    status = models.CharField(
        _("status"),
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )

    created_at = models.DateTimeField(_("criada em"), default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(_("atualizada em"), auto_now=True)
    preparing_at = models.DateTimeField(_("em preparo em"), null=True, blank=True)
    served_at = models.DateTimeField(_("entregue em"), null=True, blank=True)
    cancelled_at = models.DateTimeField(_("cancelada em"), null=True, blank=True)

    class Meta:
        app_label = "tokenman"
        verbose_name = _("senha")
        verbose_name_plural = _("senhas")
        ordering = ("-created_at", "id")
        indexes = [
            models.Index(fields=["shop", "status"], name="token_shop_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(distance_meters__gte=0),
                name="token_distance_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(estimated_pickup_time__gte=models.F("created_at")),
                name="token_pickup_after_creation",
            ),
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._original_status = self.status

    def __str__(self) -> str:
        return self.token_number

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def save(self, *args, **kwargs):
        # Máquina de estados: impede transições inválidas via save()
        if not self._state.adding and self.status != self._original_status:
            from tokenman.exceptions import InvalidTransition

            allowed = self.DEFAULT_TRANSITIONS.get(self._original_status, [])
            if self.status not in allowed:
                raise InvalidTransition(
                    code="invalid_transition",
                    message=f"Transição {self._original_status} → {self.status} não permitida",
                    context={
                        "current_status": self._original_status,
                        "requested_status": self.status,
                        "allowed_transitions": list(allowed),
                    },
                )

        super().save(*args, **kwargs)
        self._original_status = self.status

    def to_record(self) -> TokenRecord:
        """Snapshot imutável para o núcleo."""
        return TokenRecord(
            id=str(self.pk),
            token_number=self.token_number,
            shop_id=str(self.shop_id),
            customer_id=self.customer_id,
            customer_location=Location(lat=self.customer_location_lat, lng=self.customer_location_lng),
            distance_meters=self.distance_meters,
            traffic_duration_minutes=self.traffic_duration_minutes,
            estimated_pickup_time=self.estimated_pickup_time,
            status=self.status,
            created_at=self.created_at,
            backlog_count=self.backlog_count,
            preparing_at=self.preparing_at,
            served_at=self.served_at,
            cancelled_at=self.cancelled_at,
        )


class TokenEvent(models.Model):
    """
    Audit log append-only para senhas.
    """

    token = models.ForeignKey(Token, verbose_name=_("senha"), on_delete=models.CASCADE, related_name="events")

    type = models.CharField(_("tipo"), max_length=64, db_index=True)
    actor = models.CharField(_("ator"), max_length=128)
    payload = models.JSONField(_("payload"), default=dict)

    created_at = models.DateTimeField(_("criado em"), auto_now_add=True)

    class Meta:
        app_label = "tokenman"
        verbose_name = _("evento da senha")
        verbose_name_plural = _("eventos da senha")
        ordering = ("created_at", "id")

    def __str__(self) -> str:
        return f"{self.type} @ {self.created_at}"
