"""
Django Tokenman — Senhas de retirada com previsão de horário para lojas físicas.

Uso básico:
    from tokenman.models import Shop, Token
    from tokenman.services import TokenIssuer, TokenLifecycle, EtaEstimator

Para backends alternativos (diretório de lojas, store, identidade):
    from tokenman.protocols import ShopDirectory, TokenStore, IdentityProvider
"""

__title__ = "Django Tokenman"
__version__ = "0.1.0a1"
__author__ = "Tokenman Contributors"
