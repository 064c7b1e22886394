"""
Tokenman IDs — Geração de números de senha.
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from django.utils import timezone


# Caracteres seguros para IDs (sem ambíguos: 0/O, 1/l/I)
_SAFE_CHARS = string.ascii_uppercase.replace("O", "").replace("I", "") + string.digits.replace("0", "").replace("1", "")

TOKEN_PREFIX = "TKN"


def _random_part(length: int) -> str:
    return "".join(secrets.choice(_SAFE_CHARS) for _ in range(length))


def generate_token_number(now: datetime | None = None, length: int = 9) -> str:
    """
    Gera número de senha ordenado no tempo.

    Formato: TKN-<epoch ms>-XXXXXXXXX

    O sufixo aleatório torna colisões improváveis mesmo em rajadas dentro do
    mesmo milissegundo; a unicidade de fato é garantida pela constraint do store.

    Args:
        now: Instante de referência (default: timezone.now())
        length: Comprimento do sufixo aleatório
    """
    now = now or timezone.now()
    millis = int(now.timestamp() * 1000)
    return f"{TOKEN_PREFIX}-{millis}-{_random_part(length)}"


def format_sequence_number(shop_code: str, value: int, pad_width: int = 6) -> str:
    """
    Formata número de senha a partir da sequência da loja.

    Formato: TKN-<CODIGO DA LOJA>-000042

    Globalmente único porque o código da loja é único e a sequência é monotônica.
    """
    return f"{TOKEN_PREFIX}-{shop_code.strip().upper()}-{str(value).zfill(pad_width)}"


def generate_idempotency_key() -> str:
    """
    Gera chave de idempotência.

    Formato: IDEM-XXXXXXXXXXXXXXXX
    """
    return f"IDEM-{_random_part(16)}"
