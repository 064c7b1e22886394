from __future__ import annotations

from django.conf import settings
from django.utils.module_loading import import_string


TOKENMAN_DEFAULTS = {
    "SHOP_DIRECTORY": "tokenman.adapters.orm.DjangoShopDirectory",
    "TOKEN_STORE": "tokenman.adapters.orm.DjangoTokenStore",
    "IDENTITY_PROVIDER": "tokenman.adapters.orm.DjangoIdentityProvider",
    "ISSUE_MAX_ATTEMPTS": 5,
    "TRANSITION_MAX_ATTEMPTS": 3,
    "TOKEN_NUMBER_STRATEGY": "random",  # "random" | "sequence"
    "DOWNSTREAM_TIMEOUT_SECONDS": 5,
    "IDEMPOTENCY_TTL_HOURS": 24,
    "IDEMPOTENCY_LEASE_SECONDS": 60,  # prazo de uma chave in_progress
}

# Settings que são dotted paths e devem ser resolvidos para a classe
_IMPORTABLE = frozenset({"SHOP_DIRECTORY", "TOKEN_STORE", "IDENTITY_PROVIDER"})


def get_tokenman_setting(key: str):
    """Retrieve a Tokenman setting, falling back to TOKENMAN_DEFAULTS."""
    user_settings = getattr(settings, "TOKENMAN", {})
    value = user_settings.get(key, TOKENMAN_DEFAULTS.get(key))
    if key in _IMPORTABLE and isinstance(value, str):
        return import_string(value)
    return value


def build_backend(key: str):
    """Instancia o backend configurado em TOKENMAN[key]."""
    backend = get_tokenman_setting(key)
    return backend() if isinstance(backend, type) else backend
