from __future__ import annotations

import logging

from django.contrib import admin
from django.http import HttpResponseRedirect
from django.urls import reverse
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin
from unfold.contrib.filters.admin.choice_filters import ChoicesRadioFilter
from unfold.decorators import action, display

from .exceptions import TokenmanError
from .models import IdempotencyKey, Shop, Token, TokenEvent
from .protocols import Identity
from .services import TokenLifecycle
from .status import TokenStatus


logger = logging.getLogger(__name__)


def history_action(modeladmin, request, object_id):
    """Action que redireciona para o histórico do objeto."""
    url = reverse(
        f"admin:{modeladmin.model._meta.app_label}_{modeladmin.model._meta.model_name}_history",
        args=[object_id],
    )
    return HttpResponseRedirect(url)


def _actor(request) -> Identity:
    user = request.user
    return Identity(subject_id=str(user.pk), display_name=user.get_username())


class LojaFilter(admin.SimpleListFilter):
    title = _("loja")
    parameter_name = "shop__id__exact"

    def lookups(self, request, model_admin):
        qs = Shop.objects.filter(is_active=True).order_by("name", "code")
        return [(str(s.pk), s.name or s.code) for s in qs]

    def queryset(self, request, queryset):
        value = self.value()
        if not value:
            return queryset
        return queryset.filter(shop_id=value)


@admin.register(Shop)
class ShopAdmin(ModelAdmin):
    list_display = [
        "name",
        "code",
        "owner",
        "average_service_time",
        "backlog_display",
        "is_active",
        "created_at",
    ]
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    ordering = ("name",)
    list_filter_submit = True
    list_fullwidth = True
    compressed_fields = True
    warn_unsaved_form = True
    filter_horizontal = ("staff",)

    actions_detail = ["history_detail_action"]

    @action(description=_("Histórico"), url_path="history-action", icon="history")
    def history_detail_action(self, request, object_id):
        return history_action(self, request, object_id)

    fieldsets = (
        (_("Identidade"), {"fields": ("name", "code", "is_active"), "classes": ("tab",)}),
        (_("Equipe"), {"fields": ("owner", "staff"), "classes": ("tab",)}),
        (
            _("Operação"),
            {"fields": ("average_service_time", "location_lat", "location_lng"), "classes": ("tab",)},
        ),
        (_("Auditoria"), {"fields": ("created_at", "updated_at"), "classes": ("tab",)}),
    )
    readonly_fields = ("created_at", "updated_at")

    @display(description=_("fila"))
    def backlog_display(self, obj: Shop) -> int:
        return obj.tokens.filter(status__in=[TokenStatus.PENDING, TokenStatus.PREPARING]).count()


class TokenEventInline(admin.TabularInline):
    model = TokenEvent
    extra = 0
    readonly_fields = ("type", "actor", "payload", "created_at")
    can_delete = False
    ordering = ("-created_at", "-id")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Token)
class TokenAdmin(ModelAdmin):
    list_display = (
        "token_number",
        "shop",
        "customer_id",
        "status_badge",
        "backlog_count",
        "estimated_pickup_time",
        "created_at",
    )
    list_filter = (LojaFilter, ("status", ChoicesRadioFilter))
    search_fields = ("token_number", "customer_id", "shop__code", "shop__name")
    ordering = ("-created_at",)
    date_hierarchy = "created_at"
    list_filter_submit = True
    list_fullwidth = True
    compressed_fields = True

    inlines = [TokenEventInline]
    actions = ["start_preparing_action", "mark_served_action", "cancel_action"]
    actions_detail = ["history_detail_action"]

    @action(description=_("Histórico"), url_path="history-action", icon="history")
    def history_detail_action(self, request, object_id):
        return history_action(self, request, object_id)

    fieldsets = (
        (
            _("Identidade"),
            {"fields": ("token_number", "shop", "customer_id", "status"), "classes": ("tab",)},
        ),
        (
            _("Estimativa"),
            {
                "fields": (
                    "customer_location_lat",
                    "customer_location_lng",
                    "distance_meters",
                    "traffic_duration_minutes",
                    "service_time_minutes",
                    "queue_wait_minutes",
                    "backlog_count",
                    "estimated_pickup_time",
                ),
                "classes": ("tab",),
            },
        ),
        (
            _("Auditoria"),
            {
                "fields": ("created_at", "updated_at", "preparing_at", "served_at", "cancelled_at"),
                "classes": ("tab",),
            },
        ),
    )
    # Senhas só mudam pelas actions (TokenLifecycle), nunca pelo formulário
    readonly_fields = (
        "token_number",
        "shop",
        "customer_id",
        "status",
        "customer_location_lat",
        "customer_location_lng",
        "distance_meters",
        "traffic_duration_minutes",
        "service_time_minutes",
        "queue_wait_minutes",
        "backlog_count",
        "estimated_pickup_time",
        "created_at",
        "updated_at",
        "preparing_at",
        "served_at",
        "cancelled_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # Cores de referência BADGES:
    # - aguardando=azul, em preparo=amarelo, entregue=verde, cancelada=vermelho
    @display(
        description=_("status"),
        label={
            "aguardando": "info",
            "em preparo": "warning",
            "entregue": "success",
            "cancelada": "danger",
        },
    )
    def status_badge(self, obj: Token) -> str:
        return obj.get_status_display()

    def _apply(self, request, queryset, target: str) -> None:
        lifecycle = TokenLifecycle.from_settings()
        actor = _actor(request)
        ok_count = 0
        fail_count = 0

        for token in queryset:
            try:
                lifecycle.transition(actor, token.pk, target)
            except TokenmanError as e:
                fail_count += 1
                logger.warning(
                    "Admin token transition failed",
                    extra={"token_number": token.token_number, "target": target, "error_code": e.code},
                )
            else:
                ok_count += 1

        if ok_count:
            self.message_user(request, _("Senhas atualizadas: %(n)s") % {"n": ok_count})
        if fail_count:
            self.message_user(request, _("Senhas com erro: %(n)s") % {"n": fail_count}, level="error")

    @admin.action(description=_("Iniciar preparo"))
    def start_preparing_action(self, request, queryset):
        self._apply(request, queryset, TokenStatus.PREPARING)

    @admin.action(description=_("Marcar como entregue"))
    def mark_served_action(self, request, queryset):
        self._apply(request, queryset, TokenStatus.SERVED)

    @admin.action(description=_("Cancelar"))
    def cancel_action(self, request, queryset):
        self._apply(request, queryset, TokenStatus.CANCELLED)


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(ModelAdmin):
    list_display = (
        "scope",
        "key",
        "status_badge",
        "response_code",
        "expires_at",
        "created_at",
    )
    list_filter = (("status", ChoicesRadioFilter), "scope")
    search_fields = ("scope", "key")
    ordering = ("-created_at",)
    date_hierarchy = "created_at"
    list_filter_submit = True
    list_fullwidth = True
    compressed_fields = True

    fieldsets = (
        (_("Chave"), {"fields": ("scope", "key", "status"), "classes": ("tab",)}),
        (
            _("Resposta"),
            {"fields": ("response_code", "response_body"), "classes": ("tab",)},
        ),
        (_("Auditoria"), {"fields": ("expires_at", "created_at"), "classes": ("tab",)}),
    )
    readonly_fields = ("scope", "key", "response_code", "response_body", "created_at")

    @display(
        description=_("status"),
        label={"em andamento": "warning", "concluído": "success", "falhou": "danger"},
    )
    def status_badge(self, obj: IdempotencyKey) -> str:
        return obj.get_status_display()
