import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="IdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("scope", models.CharField(max_length=64, verbose_name="escopo")),
                ("key", models.CharField(max_length=128, verbose_name="chave")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("in_progress", "em andamento"),
                            ("done", "concluído"),
                            ("failed", "falhou"),
                        ],
                        default="in_progress",
                        max_length=16,
                        verbose_name="status",
                    ),
                ),
                ("response_code", models.IntegerField(blank=True, null=True, verbose_name="código de resposta")),
                ("response_body", models.JSONField(blank=True, null=True, verbose_name="corpo da resposta")),
                ("expires_at", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="expira em")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criado em")),
            ],
            options={
                "verbose_name": "chave de idempotência",
                "verbose_name_plural": "chaves de idempotência",
                "constraints": [
                    models.UniqueConstraint(fields=("scope", "key"), name="idempotency_scope_key_unique"),
                ],
                "indexes": [models.Index(fields=["status", "created_at"], name="idempotency_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Shop",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.SlugField(max_length=32, unique=True, verbose_name="código")),
                ("name", models.CharField(max_length=128, verbose_name="nome")),
                (
                    "average_service_time",
                    models.PositiveIntegerField(default=10, verbose_name="tempo médio de atendimento (min)"),
                ),
                ("location_lat", models.FloatField(blank=True, null=True, verbose_name="latitude")),
                ("location_lng", models.FloatField(blank=True, null=True, verbose_name="longitude")),
                ("is_active", models.BooleanField(default=True, verbose_name="ativa")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criada em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="atualizada em")),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="owned_shops",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="dono",
                    ),
                ),
                (
                    "staff",
                    models.ManyToManyField(
                        blank=True,
                        related_name="staffed_shops",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="atendentes",
                    ),
                ),
            ],
            options={
                "verbose_name": "loja",
                "verbose_name_plural": "lojas",
                "ordering": ("name", "id"),
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("average_service_time__gt", 0)),
                        name="shop_service_time_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ShopSequence",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("last_value", models.PositiveIntegerField(default=0, verbose_name="último valor")),
                (
                    "shop",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sequence",
                        to="tokenman.shop",
                        verbose_name="loja",
                    ),
                ),
            ],
            options={
                "verbose_name": "sequência da loja",
                "verbose_name_plural": "sequências das lojas",
            },
        ),
        migrations.CreateModel(
            name="Token",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("token_number", models.CharField(max_length=64, unique=True, verbose_name="número")),
                ("customer_id", models.CharField(db_index=True, max_length=64, verbose_name="cliente")),
                ("customer_location_lat", models.FloatField(verbose_name="latitude do cliente")),
                ("customer_location_lng", models.FloatField(verbose_name="longitude do cliente")),
                ("distance_meters", models.FloatField(verbose_name="distância (m)")),
                ("traffic_duration_minutes", models.PositiveIntegerField(verbose_name="deslocamento (min)")),
                ("service_time_minutes", models.FloatField(verbose_name="atendimento (min)")),
                ("queue_wait_minutes", models.FloatField(verbose_name="espera na fila (min)")),
                ("backlog_count", models.PositiveIntegerField(default=0, verbose_name="fila na emissão")),
                ("estimated_pickup_time", models.DateTimeField(verbose_name="retirada estimada")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "aguardando"),
                            ("preparing", "em preparo"),
                            ("served", "entregue"),
                            ("cancelled", "cancelada"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=16,
                        verbose_name="status",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name="criada em"),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="atualizada em")),
                ("preparing_at", models.DateTimeField(blank=True, null=True, verbose_name="em preparo em")),
                ("served_at", models.DateTimeField(blank=True, null=True, verbose_name="entregue em")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="cancelada em")),
                (
                    "shop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tokens",
                        to="tokenman.shop",
                        verbose_name="loja",
                    ),
                ),
            ],
            options={
                "verbose_name": "senha",
                "verbose_name_plural": "senhas",
                "ordering": ("-created_at", "id"),
                "indexes": [models.Index(fields=["shop", "status"], name="token_shop_status_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("distance_meters__gte", 0)),
                        name="token_distance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("estimated_pickup_time__gte", models.F("created_at"))),
                        name="token_pickup_after_creation",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TokenEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(db_index=True, max_length=64, verbose_name="tipo")),
                ("actor", models.CharField(max_length=128, verbose_name="ator")),
                ("payload", models.JSONField(default=dict, verbose_name="payload")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criado em")),
                (
                    "token",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="tokenman.token",
                        verbose_name="senha",
                    ),
                ),
            ],
            options={
                "verbose_name": "evento da senha",
                "verbose_name_plural": "eventos da senha",
                "ordering": ("created_at", "id"),
            },
        ),
    ]
