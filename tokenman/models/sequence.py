from __future__ import annotations

import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _


class ShopSequence(models.Model):
    """
    Contador monotônico por loja.

    Usado pela estratégia "sequence" de numeração de senhas. O incremento é
    feito com SELECT FOR UPDATE, então cada valor é entregue uma única vez.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.OneToOneField(
        "tokenman.Shop",
        verbose_name=_("loja"),
        on_delete=models.CASCADE,
        related_name="sequence",
    )
    last_value = models.PositiveIntegerField(_("último valor"), default=0)

    class Meta:
        app_label = "tokenman"
        verbose_name = _("sequência da loja")
        verbose_name_plural = _("sequências das lojas")

    def __str__(self) -> str:
        return f"{self.shop_id} = {self.last_value}"
