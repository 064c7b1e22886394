from __future__ import annotations

from django.http import JsonResponse
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ShopViewSet, TokenViewSet


def health_check(request):
    """
    Healthcheck endpoint para monitoramento.

    Returns:
        200 OK com {"status": "healthy", "version": "X.X.X"}
    """
    from tokenman import __version__

    return JsonResponse({
        "status": "healthy",
        "version": __version__,
    })


router = DefaultRouter(trailing_slash=False)
router.register("shops", ShopViewSet, basename="shops")
router.register("tokens", TokenViewSet, basename="tokens")

urlpatterns = [
    path("health", health_check, name="health-check"),
    path("", include(router.urls)),
]
