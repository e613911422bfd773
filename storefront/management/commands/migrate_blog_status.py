"""Management command to set an explicit status on legacy blog posts."""

from __future__ import annotations

from typing import Any

from django.core.management.base import BaseCommand, CommandParser

from storefront.services import BlogService


class Command(BaseCommand):
    """
    Give status=published to posts that only carry the legacy is_published flag.

    Such posts are already publicly visible; the migration only makes their
    status explicit. Running it twice changes nothing the second time.
    """

    help = (
        "Set status=published on blog posts published under the legacy "
        "is_published flag (status is null). Idempotent."
    )

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only show the posts that would be migrated.",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        dry_run: bool = options["dry_run"]

        slugs = BlogService.migrate_legacy_status(dry_run=dry_run)
        for slug in slugs:
            prefix = "[DRY] " if dry_run else ""
            self.stdout.write(f"{prefix}{slug} -> published")

        if dry_run:
            self.stdout.write(f"[DRY] Would migrate: {len(slugs)}.")
            return
        self.stdout.write(self.style.SUCCESS(f"Done. Migrated: {len(slugs)}."))
