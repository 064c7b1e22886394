"""
Testes de status, números de senha e geometria.
"""

from __future__ import annotations

import re
import unittest
from datetime import datetime, timezone as dt_timezone

from tokenman.geo import haversine_meters, is_finite_number, is_valid_coordinate
from tokenman.ids import format_sequence_number, generate_idempotency_key, generate_token_number
from tokenman.status import TERMINAL_STATUSES, TokenStatus, can_transition, transition_path


class TransitionTableTests(unittest.TestCase):
    def test_forward_transitions(self) -> None:
        self.assertTrue(can_transition(TokenStatus.PENDING, TokenStatus.PREPARING))
        self.assertTrue(can_transition(TokenStatus.PENDING, TokenStatus.CANCELLED))
        self.assertTrue(can_transition(TokenStatus.PREPARING, TokenStatus.SERVED))
        self.assertTrue(can_transition(TokenStatus.PREPARING, TokenStatus.CANCELLED))

    def test_no_backward_or_skip_transitions(self) -> None:
        self.assertFalse(can_transition(TokenStatus.PREPARING, TokenStatus.PENDING))
        self.assertFalse(can_transition(TokenStatus.PENDING, TokenStatus.SERVED))

    def test_terminal_statuses_have_no_exits(self) -> None:
        for terminal in TERMINAL_STATUSES:
            for target in TokenStatus.values:
                self.assertFalse(can_transition(terminal, target))

    def test_path_from_pending_to_served_goes_through_preparing(self) -> None:
        self.assertEqual(
            transition_path(TokenStatus.PENDING, TokenStatus.SERVED),
            [TokenStatus.PREPARING, TokenStatus.SERVED],
        )

    def test_path_to_same_status_is_empty(self) -> None:
        self.assertEqual(transition_path(TokenStatus.SERVED, TokenStatus.SERVED), [])

    def test_unreachable_target(self) -> None:
        self.assertIsNone(transition_path(TokenStatus.CANCELLED, TokenStatus.SERVED))
        self.assertIsNone(transition_path(TokenStatus.SERVED, TokenStatus.CANCELLED))


class TokenNumberTests(unittest.TestCase):
    def test_random_number_format(self) -> None:
        now = datetime(2026, 3, 1, 12, 0, tzinfo=dt_timezone.utc)
        number = generate_token_number(now)
        millis = int(now.timestamp() * 1000)
        self.assertRegex(number, rf"^TKN-{millis}-[A-Z2-9]{{9}}$")
        self.assertNotRegex(number.split("-")[-1], r"[01OI]")

    def test_random_numbers_differ(self) -> None:
        numbers = {generate_token_number() for _ in range(500)}
        self.assertEqual(len(numbers), 500)

    def test_sequence_number_format(self) -> None:
        self.assertEqual(format_sequence_number("padaria", 42), "TKN-PADARIA-000042")
        self.assertEqual(format_sequence_number("x", 1234567), "TKN-X-1234567")

    def test_idempotency_key_format(self) -> None:
        self.assertTrue(re.match(r"^IDEM-[A-Z2-9]{16}$", generate_idempotency_key()))


class GeoTests(unittest.TestCase):
    def test_finite_numbers(self) -> None:
        self.assertTrue(is_finite_number(0))
        self.assertTrue(is_finite_number(1.5))
        self.assertFalse(is_finite_number(float("nan")))
        self.assertFalse(is_finite_number(True))
        self.assertFalse(is_finite_number("1"))

    def test_coordinate_ranges(self) -> None:
        self.assertTrue(is_valid_coordinate(-23.55, -46.63))
        self.assertTrue(is_valid_coordinate(90, 180))
        self.assertFalse(is_valid_coordinate(90.1, 0))
        self.assertFalse(is_valid_coordinate(0, -180.5))
        self.assertFalse(is_valid_coordinate(None, 0))

    def test_haversine_known_distance(self) -> None:
        # 1 grau de latitude ~ 111.2 km
        d = haversine_meters(0, 0, 1, 0)
        self.assertAlmostEqual(d, 111_195, delta=50)
        self.assertEqual(haversine_meters(-23.5, -46.6, -23.5, -46.6), 0)
