"""
Management command para limpar chaves de idempotência de emissões.

Uso:
    python manage.py cleanup_idempotency_keys
    python manage.py cleanup_idempotency_keys --days 2
    python manage.py cleanup_idempotency_keys --dry-run --include-in-progress

Chaves só servem para replay de clientes que repetiram a emissão; passado o
TTL (TOKENMAN["IDEMPOTENCY_TTL_HOURS"]) podem ser removidas. Agendar via cron.
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db.models import Q
from django.utils import timezone

from tokenman.models import IdempotencyKey


class Command(BaseCommand):
    help = "Remove chaves de idempotência expiradas ou antigas"

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=7,
            help="Remove chaves done/failed mais antigas que N dias (default: 7)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Mostra o que seria removido sem remover",
        )
        parser.add_argument(
            "--include-in-progress",
            action="store_true",
            help="Também remove chaves 'in_progress' antigas (emissões interrompidas)",
        )
        parser.add_argument(
            "--orphan-hours",
            type=int,
            default=1,
            help="Idade mínima de uma chave in_progress para ser considerada órfã (default: 1)",
        )

    def handle(self, *args, **options):
        now = timezone.now()
        cutoff = now - timedelta(days=options["days"])

        expired = Q(expires_at__lt=now) & ~Q(status="in_progress")
        old = Q(created_at__lt=cutoff, status__in=["done", "failed"])
        criteria = expired | old
        if options["include_in_progress"]:
            orphan_cutoff = now - timedelta(hours=options["orphan_hours"])
            criteria |= Q(status="in_progress", created_at__lt=orphan_cutoff)

        qs = IdempotencyKey.objects.filter(criteria)
        total = qs.count()

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING(f"[DRY RUN] Seriam removidas {total} chaves"))
            for scope, count in _count_by_scope(qs):
                self.stdout.write(f"  - {scope}: {count}")
            return

        deleted, _ = qs.delete()
        self.stdout.write(self.style.SUCCESS(f"Total removido: {deleted} IdempotencyKeys"))


def _count_by_scope(qs):
    counts = {}
    for scope in qs.values_list("scope", flat=True):
        counts[scope] = counts.get(scope, 0) + 1
    return sorted(counts.items())
