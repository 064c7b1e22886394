"""
Testes do EtaEstimator: fórmula, arredondamento e validação de entrada.
"""

from __future__ import annotations

import math
import unittest
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from tokenman.exceptions import InvalidInput
from tokenman.services import EtaEstimator


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


class TrafficMinutesTests(unittest.TestCase):
    """ceil(distance / 1000 * 3) com aritmética exata."""

    def test_one_kilometre_is_three_minutes(self) -> None:
        self.assertEqual(EtaEstimator.traffic_minutes(1000), 3)

    def test_zero_distance_is_zero_minutes(self) -> None:
        self.assertEqual(EtaEstimator.traffic_minutes(0), 0)

    def test_one_metre_rounds_up_to_one_minute(self) -> None:
        self.assertEqual(EtaEstimator.traffic_minutes(1), 1)

    def test_exact_multiple_does_not_round_up(self) -> None:
        self.assertEqual(EtaEstimator.traffic_minutes(2000.0), 6)
        self.assertEqual(EtaEstimator.traffic_minutes(3000), 9)
        self.assertEqual(EtaEstimator.traffic_minutes(Decimal("1000.000")), 3)

    def test_traffic_is_monotonic_in_distance(self) -> None:
        previous = 0
        for d in range(0, 5000, 37):
            minutes = EtaEstimator.traffic_minutes(d)
            self.assertGreaterEqual(minutes, previous)
            self.assertEqual(minutes, math.ceil(Decimal(d) * 3 / 1000))
            previous = minutes


class ComputeTests(unittest.TestCase):
    def test_composite_estimate(self) -> None:
        est = EtaEstimator.compute(
            distance_meters=2000,
            average_service_time_minutes=10,
            backlog_count=2,
            now=NOW,
        )
        self.assertEqual(est.traffic_minutes, 6)
        self.assertEqual(est.wait_minutes, 20)
        self.assertEqual(est.total_minutes, 36)
        self.assertEqual(est.pickup_time, NOW + timedelta(minutes=36))
        self.assertEqual(est.now, NOW)

    def test_empty_queue_has_no_wait(self) -> None:
        est = EtaEstimator.compute(distance_meters=3000, average_service_time_minutes=5, backlog_count=0, now=NOW)
        self.assertEqual(est.wait_minutes, 0)
        self.assertEqual(est.total_minutes, 14)

    def test_pickup_is_never_before_now(self) -> None:
        est = EtaEstimator.compute(distance_meters=0, average_service_time_minutes=1, backlog_count=0, now=NOW)
        self.assertGreaterEqual(est.pickup_time, NOW)

    def test_pure_and_deterministic(self) -> None:
        a = EtaEstimator.compute(distance_meters=1234.5, average_service_time_minutes=7, backlog_count=3, now=NOW)
        b = EtaEstimator.compute(distance_meters=1234.5, average_service_time_minutes=7, backlog_count=3, now=NOW)
        self.assertEqual(a, b)

    def test_fractional_service_time(self) -> None:
        est = EtaEstimator.compute(distance_meters=1000, average_service_time_minutes=2.5, backlog_count=2, now=NOW)
        self.assertEqual(est.total_minutes, 3 + 2.5 + 5.0)
        self.assertEqual(est.pickup_time, NOW + timedelta(minutes=10.5))


class ComputeValidationTests(unittest.TestCase):
    def _assert_invalid(self, code: str, **overrides) -> None:
        kwargs = {
            "distance_meters": 1000,
            "average_service_time_minutes": 5,
            "backlog_count": 0,
            "now": NOW,
        }
        kwargs.update(overrides)
        with self.assertRaises(InvalidInput) as ctx:
            EtaEstimator.compute(**kwargs)
        self.assertEqual(ctx.exception.code, code)

    def test_negative_distance(self) -> None:
        self._assert_invalid("invalid_distance", distance_meters=-1)

    def test_non_finite_distance(self) -> None:
        self._assert_invalid("invalid_distance", distance_meters=float("nan"))
        self._assert_invalid("invalid_distance", distance_meters=float("inf"))

    def test_non_numeric_distance(self) -> None:
        self._assert_invalid("invalid_distance", distance_meters="1000")
        self._assert_invalid("invalid_distance", distance_meters=None)
        self._assert_invalid("invalid_distance", distance_meters=True)

    def test_service_time_must_be_positive(self) -> None:
        self._assert_invalid("invalid_service_time", average_service_time_minutes=0)
        self._assert_invalid("invalid_service_time", average_service_time_minutes=-5)

    def test_backlog_must_be_non_negative_integer(self) -> None:
        self._assert_invalid("invalid_backlog", backlog_count=-1)
        self._assert_invalid("invalid_backlog", backlog_count=1.5)

    def test_distance_beyond_datetime_range(self) -> None:
        self._assert_invalid("invalid_distance", distance_meters=1e13)
        self._assert_invalid("invalid_distance", distance_meters=10**30)

    def test_naive_clock_is_rejected(self) -> None:
        self._assert_invalid("invalid_clock", now=datetime(2026, 3, 1, 12, 0))
