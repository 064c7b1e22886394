from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Shop(models.Model):
    """
    Loja física que emite senhas de retirada.

    average_service_time é o tempo (em minutos) que a loja leva para preparar
    um pedido; é a base da estimativa de espera.

    Quem pode operar as senhas da loja (marcar como entregue, cancelar):
    - owner: dono da loja
    - staff: usuários delegados (ex.: atendentes com leitor de QR)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.SlugField(_("código"), max_length=32, unique=True)
    name = models.CharField(_("nome"), max_length=128)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name=_("dono"),
        on_delete=models.PROTECT,
        related_name="owned_shops",
    )
    staff = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        verbose_name=_("atendentes"),
        blank=True,
        related_name="staffed_shops",
    )

    average_service_time = models.PositiveIntegerField(
        _("tempo médio de atendimento (min)"),
        default=10,
    )
    location_lat = models.FloatField(_("latitude"), null=True, blank=True)
    location_lng = models.FloatField(_("longitude"), null=True, blank=True)

    is_active = models.BooleanField(_("ativa"), default=True)

    created_at = models.DateTimeField(_("criada em"), auto_now_add=True)
    updated_at = models.DateTimeField(_("atualizada em"), auto_now=True)

    class Meta:
        app_label = "tokenman"
        verbose_name = _("loja")
        verbose_name_plural = _("lojas")
        ordering = ("name", "id")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(average_service_time__gt=0),
                name="shop_service_time_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.name or self.code

    def is_managed_by(self, user_id) -> bool:
        """Dono ou atendente delegado."""
        if user_id is None:
            return False
        if str(self.owner_id) == str(user_id):
            return True
        return self.staff.filter(pk=user_id).exists()
