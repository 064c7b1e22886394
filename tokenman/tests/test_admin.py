from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from unittest.mock import patch

from django.contrib import admin
from django.test import RequestFactory, TestCase

from tokenman.admin import ShopAdmin, TokenAdmin
from tokenman.adapters.orm import DjangoShopDirectory, DjangoTokenStore
from tokenman.models import Shop, Token
from tokenman.services import TokenIssuer
from tokenman.unfold import get_sidebar_navigation

from .utils import identity_for, make_shop, make_user


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=dt_timezone.utc)
LOCATION = {"lat": -23.5505, "lng": -46.6333}


class TokenAdminActionTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.owner = make_user("owner")
        self.customer = make_user("customer")
        self.shop = make_shop(self.owner)
        issuer = TokenIssuer(DjangoShopDirectory(), DjangoTokenStore())
        self.tokens = [
            issuer.issue(identity_for(self.customer), str(self.shop.pk), LOCATION, 100, now=NOW).token
            for _ in range(2)
        ]
        self.model_admin = TokenAdmin(Token, admin.site)

    def _request(self, user):
        request = RequestFactory().post("/admin/tokenman/token/")
        request.user = user
        return request

    def test_mark_served_action(self) -> None:
        with patch.object(self.model_admin, "message_user") as message_user:
            self.model_admin.mark_served_action(self._request(self.owner), Token.objects.all())

        self.assertEqual(set(Token.objects.values_list("status", flat=True)), {"served"})
        message_user.assert_called_once()

    def test_action_reports_failures(self) -> None:
        Token.objects.filter(pk=self.tokens[0].id).update(status="cancelled")
        with patch.object(self.model_admin, "message_user") as message_user:
            self.model_admin.mark_served_action(self._request(self.owner), Token.objects.all())

        self.assertEqual(message_user.call_count, 2)
        self.assertEqual(Token.objects.get(pk=self.tokens[0].id).status, "cancelled")
        self.assertEqual(Token.objects.get(pk=self.tokens[1].id).status, "served")

    def test_action_respects_store_policy(self) -> None:
        stranger = make_user("stranger")
        with patch.object(self.model_admin, "message_user"):
            self.model_admin.start_preparing_action(self._request(stranger), Token.objects.all())
        self.assertEqual(set(Token.objects.values_list("status", flat=True)), {"pending"})

    def test_status_badge(self) -> None:
        token = Token.objects.get(pk=self.tokens[0].id)
        self.assertEqual(str(self.model_admin.status_badge(token)), "aguardando")


class ShopAdminTests(TestCase):
    def test_backlog_display(self) -> None:
        owner = make_user("owner")
        customer = make_user("customer")
        shop = make_shop(owner)
        TokenIssuer(DjangoShopDirectory(), DjangoTokenStore()).issue(
            identity_for(customer), str(shop.pk), LOCATION, 100, now=NOW
        )
        self.assertEqual(ShopAdmin(Shop, admin.site).backlog_display(shop), 1)

    def test_sidebar_lists_active_shops(self) -> None:
        owner = make_user("owner")
        make_shop(owner, code="padaria")
        make_shop(owner, code="fechada", is_active=False)

        navigation = get_sidebar_navigation(None)
        token_items = navigation[0]["items"][0]["items"]
        self.assertEqual([item["title"] for item in token_items], ["Todas as Senhas", "Padaria"])
