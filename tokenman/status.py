"""
Status de Token — enum fechado com tabela explícita de transições.
"""

from __future__ import annotations

from django.db import models
from django.utils.translation import gettext_lazy as _


class TokenStatus(models.TextChoices):
    """Status canônicos da senha."""

    PENDING = "pending", _("aguardando")
    PREPARING = "preparing", _("em preparo")
    SERVED = "served", _("entregue")
    CANCELLED = "cancelled", _("cancelada")


TRANSITIONS: dict[str, list[str]] = {
    TokenStatus.PENDING: [TokenStatus.PREPARING, TokenStatus.CANCELLED],
    TokenStatus.PREPARING: [TokenStatus.SERVED, TokenStatus.CANCELLED],
    TokenStatus.SERVED: [],
    TokenStatus.CANCELLED: [],
}

TERMINAL_STATUSES = frozenset({TokenStatus.SERVED, TokenStatus.CANCELLED})
ACTIVE_STATUSES = (TokenStatus.PENDING, TokenStatus.PREPARING)


def can_transition(current: str, new: str) -> bool:
    """Verifica se a transição direta current → new é permitida."""
    return new in TRANSITIONS.get(current, [])


def transition_path(current: str, target: str) -> list[str] | None:
    """
    Sequência de passos permitidos de current até target.

    Returns:
        Lista de status a aplicar em ordem (vazia se current == target),
        ou None se target não é alcançável.
    """
    if current == target:
        return []
    # Busca em largura; a tabela é pequena e acíclica
    frontier: list[list[str]] = [[current]]
    while frontier:
        path = frontier.pop(0)
        for nxt in TRANSITIONS.get(path[-1], []):
            if nxt == target:
                return path[1:] + [nxt]
            frontier.append(path + [nxt])
    return None
