from __future__ import annotations

from django.contrib.auth import get_user_model

from tokenman.models import Shop
from tokenman.protocols import Identity


def make_user(username: str, **extra):
    User = get_user_model()
    return User.objects.create_user(username, password="testpass", **extra)


def make_shop(owner, *, code: str = "padaria", average_service_time: int = 5, is_active: bool = True, **extra) -> Shop:
    return Shop.objects.create(
        code=code,
        name=code.title(),
        owner=owner,
        average_service_time=average_service_time,
        is_active=is_active,
        **extra,
    )


def identity_for(user) -> Identity:
    return Identity(subject_id=str(user.pk), display_name=user.get_username())
