"""
Django settings for Tokenman example project.

This is a minimal working example that demonstrates how to use django-tokenman
in a real Django project. It also serves as the test settings.
"""

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = "example-secret-key-change-in-production"

DEBUG = True

ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    # Third-party (unfold antes do admin)
    "unfold",
    "unfold.contrib.filters",
    # Django contrib
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.admin",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party
    "rest_framework",
    "corsheaders",
    # Tokenman core
    "tokenman",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "example.project.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
        # Busy timeout (s): prazo das escritas concorrentes no SQLite
        "OPTIONS": {"timeout": 5},
        # Banco de teste em arquivo: threads dos testes de concorrência
        # precisam de conexões próprias sobre o mesmo banco
        "TEST": {"NAME": BASE_DIR / "test_db.sqlite3"},
    }
}

AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = "pt-br"
TIME_ZONE = "America/Sao_Paulo"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Django REST Framework
REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_THROTTLE_CLASSES": [],
    "DEFAULT_THROTTLE_RATES": {
        "anon": "100/hour",
        "user": "1000/hour",
        "tokenman_issue": "30/minute",
        "tokenman_scan": "120/minute",
    },
}

# CORS (django-cors-headers): clientes web/mobile chamam a API de outra origem
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_HEADERS = (
    "accept",
    "authorization",
    "content-type",
    "user-agent",
    "x-csrftoken",
    "x-requested-with",
    "idempotency-key",
    "x-client-info",
    "apikey",
)

# Tokenman
TOKENMAN = {
    "ISSUE_MAX_ATTEMPTS": 5,
    "TRANSITION_MAX_ATTEMPTS": 3,
    "TOKEN_NUMBER_STRATEGY": "random",
    "DOWNSTREAM_TIMEOUT_SECONDS": 5,
    "IDEMPOTENCY_TTL_HOURS": 24,
    "IDEMPOTENCY_LEASE_SECONDS": 60,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "tokenman": {"handlers": ["console"], "level": "INFO"},
    },
}

# Unfold Admin
UNFOLD = {
    "SITE_TITLE": "Tokenman Example",
    "SITE_HEADER": "Tokenman",
    "SIDEBAR": {
        "show_search": True,
        "navigation": "tokenman.unfold.get_sidebar_navigation",
    },
}
