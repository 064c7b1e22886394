from __future__ import annotations

from django.core.cache import cache
from django.test import Client, TestCase
from rest_framework.test import APIClient

from tokenman.models import IdempotencyKey, Token

from .utils import make_shop, make_user


LOCATION = {"lat": -23.5505, "lng": -46.6333}


class ApiTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        cache.clear()
        self.owner = make_user("owner")
        self.customer = make_user("customer")
        self.shop = make_shop(self.owner, average_service_time=5)
        self.client = APIClient()
        self.client.force_authenticate(user=self.customer)

    def _issue(self, **overrides):
        payload = {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 3000}
        payload.update(overrides)
        return self.client.post("/api/tokens", payload, format="json")

    def _as(self, user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client


class IssueApiTests(ApiTestCase):
    def test_issue_token(self) -> None:
        resp = self._issue()
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["traffic_duration_minutes"], 9)
        self.assertEqual(resp.data["queue_position"], 1)
        self.assertEqual(resp.data["status"], "pending")
        self.assertTrue(resp.data["token_number"].startswith("TKN-"))
        token = Token.objects.get(pk=resp.data["token_id"])
        self.assertEqual(token.customer_id, str(self.customer.pk))

    def test_issue_requires_authentication(self) -> None:
        resp = APIClient().post(
            "/api/tokens",
            {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 10},
            format="json",
        )
        self.assertEqual(resp.status_code, 401, resp.data)
        self.assertEqual(resp.data["code"], "unauthorized")
        self.assertEqual(Token.objects.count(), 0)

    def test_issue_inactive_shop(self) -> None:
        self.shop.is_active = False
        self.shop.save()
        resp = self._issue()
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "shop_inactive")
        self.assertEqual(set(resp.data), {"error", "code", "context"})

    def test_issue_unknown_shop(self) -> None:
        resp = self._issue(shop_id="00000000-0000-0000-0000-000000000000")
        self.assertEqual(resp.status_code, 404, resp.data)
        self.assertEqual(resp.data["code"], "shop_not_found")

    def test_issue_invalid_distance(self) -> None:
        resp = self._issue(distance_meters=-5)
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_distance")

    def test_issue_invalid_location(self) -> None:
        resp = self._issue(customer_location={"lat": 120, "lng": 0})
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_location")

    def test_issue_malformed_body(self) -> None:
        resp = self.client.post("/api/tokens", {"shop_id": str(self.shop.pk)}, format="json")
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_input")
        self.assertIn("customer_location", resp.data["context"]["fields"])

    def test_idempotent_replay_with_header(self) -> None:
        r1 = self.client.post(
            "/api/tokens",
            {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 3000},
            format="json",
            HTTP_IDEMPOTENCY_KEY="retry-1",
        )
        r2 = self.client.post(
            "/api/tokens",
            {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 3000},
            format="json",
            HTTP_IDEMPOTENCY_KEY="retry-1",
        )
        self.assertEqual(r1.status_code, 200, r1.data)
        self.assertEqual(r2.status_code, 200, r2.data)
        self.assertEqual(r1.data["token_id"], r2.data["token_id"])
        self.assertEqual(Token.objects.count(), 1)
        self.assertEqual(IdempotencyKey.objects.get(key="retry-1").status, "done")

    def test_idempotency_key_in_body(self) -> None:
        r1 = self._issue(idempotency_key="body-key")
        r2 = self._issue(idempotency_key="body-key")
        self.assertEqual(r1.data["token_number"], r2.data["token_number"])
        self.assertEqual(Token.objects.count(), 1)

    def test_failed_issue_releases_idempotency_key(self) -> None:
        self.shop.is_active = False
        self.shop.save()
        r1 = self._issue(idempotency_key="k-1")
        self.assertEqual(r1.status_code, 400)
        self.assertEqual(IdempotencyKey.objects.get(key="k-1").status, "failed")

        self.shop.is_active = True
        self.shop.save()
        r2 = self._issue(idempotency_key="k-1")
        self.assertEqual(r2.status_code, 200, r2.data)

    def test_in_progress_key_conflicts(self) -> None:
        IdempotencyKey.objects.create(scope=f"issue:{self.customer.pk}", key="busy", status="in_progress")
        resp = self._issue(idempotency_key="busy")
        self.assertEqual(resp.status_code, 409, resp.data)
        self.assertEqual(resp.data["code"], "in_progress")

    def test_issue_distance_beyond_datetime_range(self) -> None:
        resp = self._issue(distance_meters=1e13)
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_distance")
        self.assertEqual(Token.objects.count(), 0)

    def test_oversized_idempotency_header(self) -> None:
        resp = self.client.post(
            "/api/tokens",
            {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 3000},
            format="json",
            HTTP_IDEMPOTENCY_KEY="k" * 200,
        )
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_input")
        self.assertEqual(resp.data["context"]["idempotency_key_length"], 200)
        self.assertEqual(Token.objects.count(), 0)
        self.assertEqual(IdempotencyKey.objects.count(), 0)

    def test_blank_idempotency_header(self) -> None:
        resp = self.client.post(
            "/api/tokens",
            {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 3000},
            format="json",
            HTTP_IDEMPOTENCY_KEY="   ",
        )
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_input")


class TokenReadApiTests(ApiTestCase):
    def test_list_only_own_tokens(self) -> None:
        self._issue()
        other = make_user("other")
        self._as(other).post(
            "/api/tokens",
            {"shop_id": str(self.shop.pk), "customer_location": LOCATION, "distance_meters": 10},
            format="json",
        )

        resp = self.client.get("/api/tokens")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["customer_location"], LOCATION)

    def test_list_filters_by_status(self) -> None:
        self._issue()
        self.assertEqual(len(self.client.get("/api/tokens?status=served").data), 0)
        self.assertEqual(len(self.client.get("/api/tokens?status=pending").data), 1)

    def test_retrieve_visible_to_customer_and_owner(self) -> None:
        token_id = self._issue().data["token_id"]
        self.assertEqual(self.client.get(f"/api/tokens/{token_id}").status_code, 200)
        self.assertEqual(self._as(self.owner).get(f"/api/tokens/{token_id}").status_code, 200)

        resp = self._as(make_user("stranger")).get(f"/api/tokens/{token_id}")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data["code"], "token_not_found")


class LifecycleApiTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.token_id = self._issue().data["token_id"]
        self.operator = self._as(self.owner)

    def test_serve_twice(self) -> None:
        r1 = self.operator.post(f"/api/tokens/{self.token_id}/serve")
        r2 = self.operator.post(f"/api/tokens/{self.token_id}/serve")
        self.assertEqual(r1.status_code, 200, r1.data)
        self.assertEqual(r2.status_code, 200, r2.data)
        self.assertEqual(r2.data["status"], "served")

    def test_serve_cancelled_token(self) -> None:
        self.assertEqual(self.client.post(f"/api/tokens/{self.token_id}/cancel").status_code, 200)
        resp = self.operator.post(f"/api/tokens/{self.token_id}/serve")
        self.assertEqual(resp.status_code, 409, resp.data)
        self.assertEqual(resp.data["code"], "terminal_status")

    def test_customer_cannot_serve(self) -> None:
        resp = self.client.post(f"/api/tokens/{self.token_id}/serve")
        self.assertEqual(resp.status_code, 403, resp.data)
        self.assertEqual(resp.data["code"], "forbidden")

    def test_prepare(self) -> None:
        resp = self.operator.post(f"/api/tokens/{self.token_id}/prepare")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["status"], "preparing")

    def test_scan(self) -> None:
        resp = self.operator.post("/api/tokens/scan", {"payload": f'{{"token_id": "{self.token_id}"}}'}, format="json")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["status"], "served")

    def test_scan_object_payload(self) -> None:
        resp = self.operator.post("/api/tokens/scan", {"payload": {"id": self.token_id}}, format="json")
        self.assertEqual(resp.status_code, 200, resp.data)

    def test_scan_empty_payload(self) -> None:
        resp = self.operator.post("/api/tokens/scan", {"payload": ""}, format="json")
        self.assertEqual(resp.status_code, 400, resp.data)
        self.assertEqual(resp.data["code"], "invalid_payload")

    def test_scan_unknown_token(self) -> None:
        resp = self.operator.post("/api/tokens/scan", {"payload": "nope"}, format="json")
        self.assertEqual(resp.status_code, 404, resp.data)


class ShopApiTests(ApiTestCase):
    def test_list_only_active_shops(self) -> None:
        make_shop(self.owner, code="fechada", is_active=False)
        resp = self.client.get("/api/shops")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual([s["code"] for s in resp.data], ["padaria"])
        self.assertEqual(resp.data[0]["average_service_time_minutes"], 5)

    def test_retrieve_unknown_shop(self) -> None:
        resp = self.client.get("/api/shops/00000000-0000-0000-0000-000000000000")
        self.assertEqual(resp.status_code, 404, resp.data)
        self.assertEqual(resp.data["code"], "shop_not_found")

    def test_queue(self) -> None:
        self._issue()
        self._issue()
        resp = self.client.get(f"/api/shops/{self.shop.pk}/queue")
        self.assertEqual(resp.status_code, 200, resp.data)
        self.assertEqual(resp.data["backlog_count"], 2)
        self.assertEqual(resp.data["queue_wait_minutes"], 10)


class HealthAndCorsTests(TestCase):
    def test_health(self) -> None:
        resp = Client().get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "healthy")

    def test_preflight(self) -> None:
        resp = Client().options(
            "/api/tokens",
            HTTP_ORIGIN="https://app.example.com",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
            HTTP_ACCESS_CONTROL_REQUEST_HEADERS="content-type, idempotency-key, x-client-info",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Access-Control-Allow-Origin"], "*")
        allowed = resp["Access-Control-Allow-Headers"]
        self.assertIn("idempotency-key", allowed)
        self.assertIn("x-client-info", allowed)
