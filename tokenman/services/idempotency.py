"""
IdempotencyService — Replay seguro de emissões repetidas.

Se o cliente cair antes de receber a resposta, pode repetir a requisição com
a mesma chave: a emissão não é refeita e a resposta gravada é devolvida.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable

from django.db import transaction
from django.utils import timezone

from tokenman.conf import get_tokenman_setting
from tokenman.exceptions import IdempotencyCacheHit, IdempotencyError
from tokenman.models import IdempotencyKey


logger = logging.getLogger(__name__)


class IdempotencyService:
    """
    Pipeline:
    1. Adquire a chave (ou devolve a resposta cacheada)
    2. Executa a operação
    3. Grava resposta (done) ou marca failed para permitir nova tentativa
    """

    @staticmethod
    def execute(scope: str, key: str, operation: Callable[[], tuple[int, dict]]) -> tuple[int, dict]:
        """
        Executa `operation` no máximo uma vez com sucesso por (scope, key).

        Returns:
            (status_code, body) da execução ou do cache

        Raises:
            IdempotencyError: Chave já em andamento
            Qualquer erro de `operation` (a chave fica como failed)
        """
        try:
            idem = IdempotencyService._acquire(scope, key)
        except IdempotencyCacheHit as cache_hit:
            logger.info("Idempotent replay", extra={"scope": scope, "idempotency_key": key})
            cached = cache_hit.cached_response
            return cached["status_code"], cached["body"]

        try:
            status_code, body = operation()
        except Exception:
            idem.mark_failed()
            raise

        idem.mark_done(status_code, body, expires_at=IdempotencyService._expiry())
        return status_code, body

    @staticmethod
    def _expiry():
        return timezone.now() + timedelta(hours=get_tokenman_setting("IDEMPOTENCY_TTL_HOURS"))

    @staticmethod
    def _lease():
        # Emissão interrompida libera a chave depois do lease, não do TTL
        return timezone.now() + timedelta(seconds=get_tokenman_setting("IDEMPOTENCY_LEASE_SECONDS"))

    @staticmethod
    def _acquire(scope: str, key: str) -> IdempotencyKey:
        """
        Returns:
            IdempotencyKey com status="in_progress"

        Raises:
            IdempotencyCacheHit: Chave concluída com resposta gravada
            IdempotencyError: Chave em andamento
        """
        with transaction.atomic():
            idem, created = IdempotencyKey.objects.select_for_update().get_or_create(
                scope=scope,
                key=key,
                defaults={"status": IdempotencyKey.Status.IN_PROGRESS, "expires_at": IdempotencyService._lease()},
            )
            if created:
                return idem

            if idem.cached_response:
                raise IdempotencyCacheHit(idem.cached_response)
            if idem.status == IdempotencyKey.Status.IN_PROGRESS:
                if idem.is_expired():
                    # Chave órfã: permite nova tentativa
                    idem.expires_at = IdempotencyService._lease()
                    idem.save(update_fields=["expires_at"])
                    return idem
                raise IdempotencyError(
                    code="in_progress",
                    message="Emissão já está em andamento com esta chave",
                    context={"idempotency_key": key},
                )
            # Status "failed" - permite nova tentativa
            idem.status = IdempotencyKey.Status.IN_PROGRESS
            idem.expires_at = IdempotencyService._lease()
            idem.save(update_fields=["status", "expires_at"])
            return idem
