"""
Django AppConfig para Tokenman.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class TokenmanConfig(AppConfig):
    name = "tokenman"
    label = "tokenman"
    verbose_name = _("Senhas de retirada")
    default_auto_field = "django.db.models.BigAutoField"
