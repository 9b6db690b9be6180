from django.core.management.base import BaseCommand
from apps.rbac.models import Role

DEFAULT_ROLES = {
    "admin": "Full administrative access",
    "clinician": "Doctors and nurses: own schedule, check-in and visit progress",
    "staff": "Front desk: booking, rescheduling and cancellations",
}

class Command(BaseCommand):
    help = "Seed default scheduling roles"

    def handle(self, *args, **options):
        for name, desc in DEFAULT_ROLES.items():
            obj, created = Role.objects.get_or_create(name=name, defaults={"description": desc})
            self.stdout.write(self.style.SUCCESS(f"{'Created' if created else 'Exists'}: {obj.name}"))
