"""
URL configuration for Tokenman example project.

- /admin/  painel de balcão (unfold)
- /api/    emissão e ciclo de vida das senhas
"""

from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView

urlpatterns = [
    path("", RedirectView.as_view(url="/api/shops", permanent=False)),
    path("admin/", admin.site.urls),
    path("api/", include("tokenman.api.urls")),
]
