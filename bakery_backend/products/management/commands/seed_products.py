"""
PATH: products/management/commands/seed_products.py

Seed the storefront's featured cakes (idempotent by name).
"""

from __future__ import annotations

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from products.models import Product

FEATURED_CAKES = [
    (
        "Classic Chocolate",
        "Rich chocolate sponge layered with dark chocolate ganache.",
        Decimal("45.00"),
        "https://images.unsplash.com/photo-1578985545062-69928b1d9587",
    ),
    (
        "Vanilla Dream",
        "Light vanilla bean sponge with whipped vanilla buttercream.",
        Decimal("40.00"),
        "https://images.unsplash.com/photo-1464349095431-e9a21285b5f3",
    ),
    (
        "Berry Bliss",
        "Mixed berry compote between layers of lemon sponge.",
        Decimal("50.00"),
        "https://images.unsplash.com/photo-1565958011703-44f9829ba187",
    ),
]


class Command(BaseCommand):
    help = "Seed the featured cakes on the menu (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--update-prices",
            action="store_true",
            help="Overwrite price/description/image of existing products.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        update = bool(options.get("update_prices"))
        created_count = 0

        for name, description, price, image_url in FEATURED_CAKES:
            defaults = {
                "description": description,
                "price": price,
                "image_url": image_url,
                "is_available": True,
            }

            if update:
                _, created = Product.objects.update_or_create(name=name, defaults=defaults)
            else:
                _, created = Product.objects.get_or_create(name=name, defaults=defaults)

            created_count += int(created)

        self.stdout.write(
            self.style.SUCCESS(
                f"Menu seeded: {created_count} created, "
                f"{len(FEATURED_CAKES) - created_count} already present."
            )
        )
