"""
TokenLifecycle — Avança o status de uma senha (leitor de QR, atendente).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Callable

from django.utils import timezone

from tokenman.conf import build_backend, get_tokenman_setting
from tokenman.exceptions import InvalidInput, InvalidTransition, TokenNotFound
from tokenman.protocols import Identity, TokenRecord, TokenStore
from tokenman.services.downstream import downstream
from tokenman.services.issue import require_identity
from tokenman.status import TERMINAL_STATUSES, TokenStatus, transition_path


logger = logging.getLogger(__name__)


def parse_scan_payload(payload) -> str:
    """
    Extrai o token_id de um código escaneado.

    Aceita o JSON que a camada de exibição embute no QR
    ({"token_id": ...} ou {"id": ...}) ou o id puro.

    Raises:
        InvalidInput: Payload vazio ou JSON sem id
    """
    if isinstance(payload, dict):
        parsed = payload
        text = ""
    else:
        text = str(payload or "").strip()
        if not text:
            raise InvalidInput(code="invalid_payload", message="Código escaneado vazio")
        try:
            parsed = json.loads(text)
        except ValueError:
            return text
    if isinstance(parsed, dict):
        token_id = parsed.get("token_id") or parsed.get("id")
        if not token_id:
            raise InvalidInput(
                code="invalid_payload",
                message="Código escaneado não contém token_id",
                context={"keys": sorted(parsed.keys())},
            )
        return str(token_id)
    if isinstance(parsed, str):
        # String JSON ("\"<uuid>\""): o id é o conteúdo sem aspas
        token_id = parsed.strip()
        if not token_id:
            raise InvalidInput(code="invalid_payload", message="Código escaneado vazio")
        return token_id
    return text


class TokenLifecycle:
    """
    Transições de status de Token.

    - pending → preparing → served (terminal)
    - pending | preparing → cancelled (terminal)

    Idempotência: pedir o status em que a senha já está devolve a senha sem
    alterá-la (leituras duplicadas do QR são inofensivas).

    Autorização é a política do store (dono/atendente da loja; o próprio
    cliente só pode cancelar). O núcleo apenas repassa a identidade.

    Cada passo é um compare-and-set no status atual; se outro ator mudou a
    senha no meio do caminho, relê e replaneja (até max_attempts).
    """

    def __init__(
        self,
        store: TokenStore,
        *,
        max_attempts: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.max_attempts = max_attempts or get_tokenman_setting("TRANSITION_MAX_ATTEMPTS")
        self.clock = clock or timezone.now

    @classmethod
    def from_settings(cls) -> TokenLifecycle:
        return cls(store=build_backend("TOKEN_STORE"))

    def mark_served(self, actor: Identity | None, token_id) -> TokenRecord:
        """Marca como entregue. De pending, passa por preparing."""
        return self.transition(actor, token_id, TokenStatus.SERVED)

    def mark_served_from_scan(self, actor: Identity | None, payload) -> TokenRecord:
        return self.mark_served(actor, parse_scan_payload(payload))

    def start_preparing(self, actor: Identity | None, token_id) -> TokenRecord:
        return self.transition(actor, token_id, TokenStatus.PREPARING)

    def cancel(self, actor: Identity | None, token_id) -> TokenRecord:
        return self.transition(actor, token_id, TokenStatus.CANCELLED)

    def _load(self, actor: Identity, token_id: str) -> TokenRecord:
        with downstream("store.get_token", token_id=token_id):
            record = self.store.get_token(token_id, actor=actor)
        if record is None:
            raise TokenNotFound(message=f"Senha não encontrada: {token_id}", context={"token_id": token_id})
        return record

    def transition(self, actor: Identity | None, token_id, target: str) -> TokenRecord:
        """
        Leva a senha até `target` pelos passos permitidos.

        Raises:
            Unauthorized: Sem identidade, ou política do store negou
            TokenNotFound: Senha inexistente/invisível
            InvalidTransition: Target inalcançável a partir do status atual
        """
        actor = require_identity(actor)
        if target not in TokenStatus.values:
            raise InvalidInput(code="invalid_status", message=f"Status desconhecido: {target}")
        token_id = str(token_id)

        for attempt in range(1, self.max_attempts + 1):
            record = self._load(actor, token_id)

            if record.status == target:
                logger.info(
                    "Token transition already applied",
                    extra={"token_id": token_id, "status": target, "actor": actor.subject_id},
                )
                return record

            path = transition_path(record.status, target)
            if path is None:
                code = "terminal_status" if record.status in TERMINAL_STATUSES else "invalid_transition"
                raise InvalidTransition(
                    code=code,
                    message=f"Transição {record.status} → {target} não permitida",
                    context={"current_status": record.status, "requested_status": target},
                )

            current = record
            for step in path:
                with downstream("store.compare_and_set_status", token_id=token_id):
                    updated = self.store.compare_and_set_status(
                        token_id,
                        actor=actor,
                        expected=current.status,
                        new=step,
                        at=self.clock(),
                    )
                if updated is None:
                    break
                current = updated
            else:
                logger.info(
                    "Token status changed",
                    extra={
                        "token_id": token_id,
                        "old_status": record.status,
                        "new_status": current.status,
                        "actor": actor.subject_id,
                    },
                )
                return current

            logger.warning(
                "Concurrent token modification",
                extra={"token_id": token_id, "target": target, "attempt": attempt},
            )

        raise InvalidTransition(
            code="concurrent_modification",
            message="Senha alterada concorrentemente; tente novamente",
            context={"token_id": token_id, "requested_status": target},
        )
