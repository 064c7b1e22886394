"""
Chamadas a colaboradores externos (diretório, store) com erros estáveis.

Erros de driver/rede não são significativos para o chamador; aqui viram
Timeout ou UpstreamUnavailable (ou o erro indicado pelo chamador, ex.:
TokenCreationFailed numa escrita).
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from django.db import DatabaseError, InterfaceError, OperationalError

from tokenman.conf import get_tokenman_setting
from tokenman.exceptions import Timeout, TokenmanError, TokenNumberConflict, UpstreamUnavailable


logger = logging.getLogger(__name__)

# Fragmentos de mensagem que drivers usam para prazo/lock excedido
_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "statement timeout",
    "lock wait",
    "database is locked",
)


def _looks_like_timeout(exc: BaseException) -> bool:
    msg = str(exc).lower()
    return any(marker in msg for marker in _TIMEOUT_MARKERS)


@contextmanager
def downstream(operation: str, *, failure=UpstreamUnavailable, failure_code: str | None = None, **context):
    """
    Executa o bloco traduzindo falhas de infraestrutura.

    Args:
        operation: Nome da operação (log e context do erro)
        failure: Classe de erro para falhas que não são timeout
        failure_code: Code para o erro de falha (default: code da classe)
        context: Dados extras anexados ao erro
    """
    timeout_s = get_tokenman_setting("DOWNSTREAM_TIMEOUT_SECONDS")
    started = time.monotonic()
    ctx = {"operation": operation, **context}
    try:
        yield
    except (TokenmanError, TokenNumberConflict):
        raise
    except TimeoutError as exc:
        logger.warning("Downstream timeout", extra={**ctx, "error": str(exc)})
        raise Timeout(message=f"{operation} excedeu o prazo de {timeout_s}s", context=ctx) from exc
    except OperationalError as exc:
        if _looks_like_timeout(exc):
            logger.warning("Downstream timeout", extra={**ctx, "error": str(exc)})
            raise Timeout(message=f"{operation} excedeu o prazo de {timeout_s}s", context=ctx) from exc
        logger.warning("Downstream failure", extra={**ctx, "error": str(exc)})
        raise failure(code=failure_code, message=f"{operation} indisponível", context=ctx) from exc
    except (InterfaceError, DatabaseError, ConnectionError) as exc:
        logger.warning("Downstream failure", extra={**ctx, "error": str(exc)})
        raise failure(code=failure_code, message=f"{operation} indisponível", context=ctx) from exc
    finally:
        elapsed = time.monotonic() - started
        if timeout_s and elapsed > timeout_s:
            logger.warning(
                "Slow downstream call",
                extra={**ctx, "elapsed_s": round(elapsed, 3), "timeout_s": timeout_s},
            )
