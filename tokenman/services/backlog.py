"""
QueueBacklogReader — Quantas senhas não terminais a loja tem agora.
"""

from __future__ import annotations

import logging

from tokenman.protocols import TokenStore
from tokenman.services.downstream import downstream


logger = logging.getLogger(__name__)


class QueueBacklogReader:
    """
    Lê o backlog (pending + preparing) de uma loja.

    A leitura NÃO é linearizável com inserts concorrentes: duas emissões
    simultâneas podem ler o mesmo valor. Só a unicidade do token_number é
    garantida; a posição na fila é informativa.
    """

    def __init__(self, store: TokenStore) -> None:
        self.store = store

    def count(self, shop_id: str) -> int:
        with downstream("backlog.count", shop_id=shop_id):
            value = self.store.count_active(shop_id)
        # Store sem linhas pode devolver None
        return max(int(value or 0), 0)
