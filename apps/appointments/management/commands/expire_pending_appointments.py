# apps/appointments/management/commands/expire_pending_appointments.py
from django.core.management.base import BaseCommand, CommandError

from apps.appointments import policies
from apps.appointments.exceptions import ValidationError


class Command(BaseCommand):
    help = "Cancel pending appointments older than the configured (or given) age. Use --dry-run to preview only."

    def add_arguments(self, parser):
        parser.add_argument("--minutes", type=int, default=None, help="Override SCHEDULING['PENDING_EXPIRY_MINUTES']")
        parser.add_argument("--dry-run", action="store_true", help="Preview only; do not cancel anything")

    def handle(self, *args, **opts):
        minutes = opts["minutes"] if opts["minutes"] is not None else policies.pending_expiry_minutes()
        if minutes is None:
            self.stdout.write(self.style.WARNING("No pending-expiry policy configured; nothing to do."))
            return

        try:
            ids = policies.expire_stale_pending(max_age_minutes=minutes, dry_run=opts["dry_run"])
        except ValidationError as exc:
            raise CommandError(exc.detail)

        for pk in ids:
            prefix = "[DRY RUN] would cancel" if opts["dry_run"] else "cancelled"
            self.stdout.write(f"{prefix} pending appointment #{pk}")

        self.stdout.write(self.style.SUCCESS(f"Done. Total: {len(ids)}"))
