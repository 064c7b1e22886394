"""
Tokenman API Views — ViewSets para a REST API.

Endpoints de emissão de senhas, ciclo de vida (leitor de QR / atendente) e
catálogo de lojas. Erros do Tokenman viram respostas {error, code, context}.

Configuração de Throttling:
    Configure em settings.py:

    REST_FRAMEWORK = {
        'DEFAULT_THROTTLE_RATES': {
            'anon': '100/hour',
            'user': '1000/hour',
            'tokenman_issue': '30/minute',   # Rate limit para emissões
            'tokenman_scan': '120/minute',   # Rate limit para leituras de QR
        }
    }
"""

from __future__ import annotations

import logging
import uuid

from django.http import Http404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from tokenman.conf import build_backend
from tokenman.exceptions import (
    IdempotencyError,
    InvalidInput,
    InvalidTransition,
    ShopInactive,
    ShopNotFound,
    Timeout,
    TokenCreationFailed,
    TokenmanError,
    TokenNotFound,
    Unauthorized,
    UpstreamUnavailable,
)
from tokenman.models import IdempotencyKey, Shop, Token
from tokenman.protocols import Identity
from tokenman.services import TokenIssuer, TokenLifecycle
from tokenman.services.idempotency import IdempotencyService
from tokenman.services.issue import require_identity

from .serializers import (
    ScanSerializer,
    ShopQueueSerializer,
    ShopSerializer,
    TokenIssueSerializer,
    TokenRecordSerializer,
)


logger = logging.getLogger(__name__)


# Ordem importa: subclasses antes das bases
ERROR_STATUS = (
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (ShopInactive, status.HTTP_400_BAD_REQUEST),
    (TokenCreationFailed, status.HTTP_400_BAD_REQUEST),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (ShopNotFound, status.HTTP_404_NOT_FOUND),
    (TokenNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (IdempotencyError, status.HTTP_409_CONFLICT),
    (UpstreamUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (Timeout, status.HTTP_504_GATEWAY_TIMEOUT),
)


def error_status(exc: TokenmanError) -> int:
    """HTTP status para uma exceção do Tokenman."""
    if isinstance(exc, Unauthorized) and exc.code == "forbidden":
        return status.HTTP_403_FORBIDDEN
    for exc_class, http_status in ERROR_STATUS:
        if isinstance(exc, exc_class):
            return http_status
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(exc: TokenmanError) -> Response:
    body = {"error": exc.message or exc.code, "code": exc.code, "context": exc.context}
    return Response(body, status=error_status(exc))


class IssueRateThrottle(UserRateThrottle):
    """
    Throttle específico para emissão de senhas.

    Configure via 'tokenman_issue' em DEFAULT_THROTTLE_RATES.
    """

    scope = "tokenman_issue"


class ScanRateThrottle(UserRateThrottle):
    """
    Throttle específico para leituras de QR / mudanças de status.

    Configure via 'tokenman_scan' em DEFAULT_THROTTLE_RATES.
    """

    scope = "tokenman_scan"


class TokenmanViewMixin:
    """Identidade via IDENTITY_PROVIDER e tradução de TokenmanError para HTTP."""

    def get_identity(self) -> Identity | None:
        provider = build_backend("IDENTITY_PROVIDER")
        return provider.identify(self.request)

    def handle_exception(self, exc):
        if isinstance(exc, TokenmanError):
            logger.warning(
                "API request failed",
                extra={
                    "path": self.request.path,
                    "error_code": exc.code,
                    "error_message": exc.message,
                },
            )
            return error_response(exc)
        return super().handle_exception(exc)


class ShopViewSet(TokenmanViewMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet para lojas ativas (read-only).

    Endpoints:
        GET /api/shops - Lista lojas aceitando senhas
        GET /api/shops/{id} - Detalhes de uma loja
        GET /api/shops/{id}/queue - Backlog atual e espera estimada

    Lojas são configuradas via admin.
    """

    queryset = Shop.objects.filter(is_active=True).order_by("name")
    serializer_class = ShopSerializer
    throttle_classes = [AnonRateThrottle, UserRateThrottle]

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            shop_id = self.kwargs.get(self.lookup_url_kwarg or self.lookup_field)
            raise ShopNotFound(message=f"Loja não encontrada: {shop_id}", context={"shop_id": shop_id})

    @action(detail=True, methods=["get"], url_path="queue")
    def queue(self, request, *args, **kwargs):
        """Backlog atual (pending + preparing) e quanto um novo cliente esperaria na fila."""
        issuer = TokenIssuer.from_settings()
        shop = issuer.get_active_shop(self.kwargs["pk"])
        backlog = issuer.backlog.count(shop.id)
        data = {
            "shop_id": shop.id,
            "backlog_count": backlog,
            "average_service_time_minutes": shop.average_service_time_minutes,
            "queue_wait_minutes": backlog * shop.average_service_time_minutes,
        }
        return Response(ShopQueueSerializer(data).data, status=status.HTTP_200_OK)


class TokenViewSet(TokenmanViewMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet para senhas.

    Endpoints:
        GET  /api/tokens - Senhas do chamador (mais recentes primeiro)
        POST /api/tokens - Emite nova senha
        GET  /api/tokens/{id} - Detalhes (cliente, dono ou atendente da loja)
        POST /api/tokens/{id}/prepare - pending → preparing
        POST /api/tokens/{id}/serve - Marca como entregue
        POST /api/tokens/{id}/cancel - Cancela
        POST /api/tokens/scan - Marca como entregue a partir do QR

    Notas:
        - Emissão é idempotente com header Idempotency-Key (ou idempotency_key no body)
        - Mudanças de status são idempotentes: repetir a mesma ação devolve a senha
    """

    serializer_class = TokenRecordSerializer
    throttle_classes = [AnonRateThrottle, UserRateThrottle]

    def get_queryset(self):
        identity = require_identity(self.get_identity())
        qs = Token.objects.filter(customer_id=identity.subject_id).order_by("-created_at")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        shop_id = self.request.query_params.get("shop_id")
        if shop_id:
            try:
                qs = qs.filter(shop_id=uuid.UUID(str(shop_id)))
            except ValueError:
                raise InvalidInput(code="invalid_input", message="shop_id inválido", context={"shop_id": shop_id})
        return qs

    def list(self, request, *args, **kwargs):
        records = [token.to_record() for token in self.get_queryset()]
        return Response(TokenRecordSerializer(records, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        identity = require_identity(self.get_identity())
        token_id = self.kwargs["pk"]
        record = build_backend("TOKEN_STORE").get_token(token_id, actor=identity)
        if record is None:
            raise TokenNotFound(message=f"Senha não encontrada: {token_id}", context={"token_id": token_id})
        return Response(TokenRecordSerializer(record).data)

    def get_throttles(self):
        if self.action == "create":
            return [IssueRateThrottle()]
        if self.action in ("serve", "prepare", "cancel", "scan"):
            return [ScanRateThrottle()]
        return super().get_throttles()

    def create(self, request, *args, **kwargs):
        """
        Emite uma senha.

        Returns:
            200: {token_id, token_number, estimated_pickup_time,
                  traffic_duration_minutes, queue_position, status, created_at}
            400: InvalidInput / ShopInactive / TokenCreationFailed
            401: Sem identidade
            404: Loja não encontrada
            409: Mesma Idempotency-Key ainda em andamento
        """
        identity = require_identity(self.get_identity())
        s = TokenIssueSerializer(data=request.data)
        if not s.is_valid():
            raise InvalidInput(code="invalid_input", message="Requisição inválida", context={"fields": s.errors})
        data = s.validated_data
        idempotency_key = request.headers.get("Idempotency-Key") or data.get("idempotency_key")
        if idempotency_key is not None:
            idempotency_key = idempotency_key.strip()
            max_length = IdempotencyKey._meta.get_field("key").max_length
            if not idempotency_key or len(idempotency_key) > max_length:
                raise InvalidInput(
                    code="invalid_input",
                    message=f"Idempotency-Key deve ter entre 1 e {max_length} caracteres",
                    context={"idempotency_key_length": len(idempotency_key)},
                )

        logger.info(
            "Token issue requested",
            extra={
                "shop_id": data["shop_id"],
                "actor": identity.subject_id,
                "idempotency_key": idempotency_key,
            },
        )

        issuer = TokenIssuer.from_settings()

        def _issue() -> tuple[int, dict]:
            result = issuer.issue(
                identity,
                data["shop_id"],
                dict(data["customer_location"]),
                data.get("distance_meters"),
            )
            return status.HTTP_200_OK, result.as_response()

        if idempotency_key:
            http_status, body = IdempotencyService.execute(
                scope=f"issue:{identity.subject_id}",
                key=idempotency_key,
                operation=_issue,
            )
        else:
            http_status, body = _issue()
        return Response(body, status=http_status)

    def _transition(self, request, target: str) -> Response:
        lifecycle = TokenLifecycle.from_settings()
        record = lifecycle.transition(self.get_identity(), self.kwargs["pk"], target)
        return Response(TokenRecordSerializer(record).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="prepare")
    def prepare(self, request, *args, **kwargs):
        return self._transition(request, "preparing")

    @action(detail=True, methods=["post"], url_path="serve")
    def serve(self, request, *args, **kwargs):
        return self._transition(request, "served")

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, *args, **kwargs):
        return self._transition(request, "cancelled")

    @action(detail=False, methods=["post"], url_path="scan")
    def scan(self, request, *args, **kwargs):
        s = ScanSerializer(data=request.data)
        if not s.is_valid():
            raise InvalidInput(code="invalid_payload", message="Código escaneado ausente", context={"fields": s.errors})
        lifecycle = TokenLifecycle.from_settings()
        record = lifecycle.mark_served_from_scan(self.get_identity(), s.validated_data["payload"])
        return Response(TokenRecordSerializer(record).data, status=status.HTTP_200_OK)
