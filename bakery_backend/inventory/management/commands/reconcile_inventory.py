# inventory/management/commands/reconcile_inventory.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from inventory.models import Ingredient
from inventory.services.exceptions import LedgerDriftError
from inventory.services.ledger import check_ledger, recompute_stock


class Command(BaseCommand):
    help = "Check every ingredient's current_stock against its ledger (optionally fix drift)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Reset drifted current_stock values to the ledger sum.",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any drift is found.",
        )

    def handle(self, *args, **options):
        fix = bool(options.get("fix"))
        strict = bool(options.get("strict"))

        self.stdout.write(self.style.MIGRATE_HEADING("Inventory ledger reconciliation"))

        checked = 0
        drifted = []

        for ingredient in Ingredient.objects.order_by("name").iterator():
            checked += 1
            try:
                check_ledger(ingredient)
            except LedgerDriftError as exc:
                drifted.append(ingredient)
                self.stderr.write(self.style.ERROR(f"[DRIFT] {ingredient.name}: {exc}"))
                if fix:
                    correction = recompute_stock(ingredient)
                    self.stdout.write(
                        self.style.WARNING(f"  fixed: {ingredient.name} corrected by {correction}")
                    )

        self.stdout.write(f"Ingredients checked: {checked}")

        if not drifted:
            self.stdout.write(self.style.SUCCESS("[OK] current_stock matches the ledger everywhere"))
        elif fix:
            self.stdout.write(self.style.SUCCESS(f"[FIXED] {len(drifted)} ingredient(s) recomputed"))
        else:
            self.stderr.write(self.style.ERROR(f"[FAIL] {len(drifted)} ingredient(s) drifted"))

        if strict and drifted and not fix:
            raise SystemExit(1)
