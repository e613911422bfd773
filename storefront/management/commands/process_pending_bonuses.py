"""Management command to credit pending bonuses whose date has come."""

from __future__ import annotations

from typing import Any

from django.core.management.base import BaseCommand

from storefront.services import BonusService


class Command(BaseCommand):
    help = (
        "Credit every unprocessed pending bonus whose availability date has "
        "passed. Suitable for cron."
    )

    def handle(self, *args: Any, **options: Any) -> None:
        result = BonusService.process_pending_bonuses()

        for item in result["processed"]:
            self.stdout.write(
                f"+{item['bonus_amount']} -> {item['phone_number']} ({item['sale_reference']})"
            )
        for item in result["failed"]:
            self.stderr.write(
                self.style.ERROR(f"Pending bonus {item['id']} ({item['phone_number']}): {item['message']}")
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Done. Processed: {result['processed_count']}, failed: {len(result['failed'])}."
            )
        )
