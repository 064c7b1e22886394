"""
Tokenman Models.

Re-exports de todos os modelos:
    from tokenman.models import Shop, Token, TokenEvent, ...
"""

from .idempotency import IdempotencyKey  # noqa: F401
from .sequence import ShopSequence  # noqa: F401
from .shop import Shop  # noqa: F401
from .token import Token, TokenEvent  # noqa: F401
