from django.core.management.base import BaseCommand

from notifications.services import delete_old_notifications, old_notifications, retention_days


class Command(BaseCommand):
    help = "Delete notifications older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Delete notifications older than this many days (default: RIDESHARE retention, 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"] if options["days"] is not None else retention_days()

        if options["dry_run"]:
            count = old_notifications(days).count()
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {count} notification(s) older than {days} days."
                )
            )
            return

        deleted = delete_old_notifications(days)
        self.stdout.write(
            self.style.SUCCESS(f"Deleted {deleted} notification(s) older than {days} days.")
        )
