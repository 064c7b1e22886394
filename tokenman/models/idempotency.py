from __future__ import annotations

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class IdempotencyKey(models.Model):
    """
    Guarda de replay para emissões de senha.

    Uma chave por (scope, key); o scope é "issue:<subject_id>", então clientes
    diferentes podem reutilizar o mesmo valor de chave sem colidir.
    """

    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress", _("em andamento")
        DONE = "done", _("concluído")
        FAILED = "failed", _("falhou")

    scope = models.CharField(_("escopo"), max_length=64)
    key = models.CharField(_("chave"), max_length=128)
    status = models.CharField(_("status"), max_length=16, choices=Status.choices, default=Status.IN_PROGRESS)

    # Resposta gravada: {"status_code": int, "body": dict}
    response_code = models.IntegerField(_("código de resposta"), null=True, blank=True)
    response_body = models.JSONField(_("corpo da resposta"), null=True, blank=True)

    expires_at = models.DateTimeField(_("expira em"), null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(_("criado em"), auto_now_add=True)

    class Meta:
        app_label = "tokenman"
        verbose_name = _("chave de idempotência")
        verbose_name_plural = _("chaves de idempotência")
        constraints = [
            models.UniqueConstraint(fields=["scope", "key"], name="idempotency_scope_key_unique"),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="idempotency_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.scope}:{self.key}"

    def is_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return self.expires_at is not None and self.expires_at <= now

    @property
    def cached_response(self) -> dict | None:
        if self.status == self.Status.DONE and self.response_body:
            return self.response_body
        return None

    def mark_done(self, status_code: int, body: dict, expires_at=None) -> None:
        self.status = self.Status.DONE
        self.response_code = status_code
        self.response_body = {"status_code": status_code, "body": body}
        fields = ["status", "response_code", "response_body"]
        if expires_at is not None:
            self.expires_at = expires_at
            fields.append("expires_at")
        self.save(update_fields=fields)

    def mark_failed(self) -> None:
        self.status = self.Status.FAILED
        self.save(update_fields=["status"])
