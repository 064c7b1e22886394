"""
Tests for tokenman.exceptions module.
"""

from __future__ import annotations

from django.test import SimpleTestCase

from tokenman.exceptions import (
    IdempotencyCacheHit,
    IdempotencyError,
    InvalidInput,
    InvalidTransition,
    ShopInactive,
    ShopNotFound,
    Timeout,
    TokenCreationFailed,
    TokenmanError,
    TokenNotFound,
    TokenNumberConflict,
    Unauthorized,
    UpstreamUnavailable,
)


class TokenmanErrorTests(SimpleTestCase):
    def test_attributes(self) -> None:
        error = InvalidInput(code="invalid_distance", message="bad", context={"distance_meters": -1})
        self.assertEqual(error.code, "invalid_distance")
        self.assertEqual(error.message, "bad")
        self.assertEqual(error.context, {"distance_meters": -1})
        self.assertEqual(str(error), "bad")

    def test_default_context(self) -> None:
        self.assertEqual(ShopNotFound(message="x").context, {})

    def test_default_codes(self) -> None:
        expected = {
            Unauthorized: "unauthorized",
            ShopNotFound: "shop_not_found",
            ShopInactive: "shop_inactive",
            InvalidInput: "invalid_input",
            TokenCreationFailed: "token_creation_failed",
            TokenNotFound: "token_not_found",
            InvalidTransition: "invalid_transition",
            Timeout: "timeout",
            UpstreamUnavailable: "upstream_unavailable",
            IdempotencyError: "idempotency_error",
        }
        for exc_class, code in expected.items():
            with self.subTest(exc_class=exc_class.__name__):
                error = exc_class()
                self.assertIsInstance(error, TokenmanError)
                self.assertEqual(error.code, code)

    def test_cache_hit_carries_response(self) -> None:
        hit = IdempotencyCacheHit({"status_code": 200, "body": {}})
        self.assertEqual(hit.cached_response["status_code"], 200)
        self.assertEqual(hit.code, "cache_hit")

    def test_number_conflict_is_internal(self) -> None:
        conflict = TokenNumberConflict("TKN-1-AAAA")
        self.assertNotIsInstance(conflict, TokenmanError)
        self.assertEqual(conflict.token_number, "TKN-1-AAAA")
