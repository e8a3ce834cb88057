from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from onboarding.models import User

TEST_SET = [
    ("superadmin", User.ROLE_SUPER_ADMIN, "superadmin@grandpro-hmso.ng"),
    ("admin1", User.ROLE_ADMIN, "admin1@grandpro-hmso.ng"),
    ("hospitaladmin1", User.ROLE_HOSPITAL_ADMIN, "hospitaladmin1@example.ng"),
    ("nurse1", User.ROLE_NURSE, "nurse1@example.ng"),
]


class Command(BaseCommand):
    help = "Ensure test users exist with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="ChangeMe123!")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        for username, role, email in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "email": email, "password": password, "is_active": True},
            )
            if not created:
                # reset password, role and activation
                u.password = password
                u.role = role
                u.email = email
                u.is_active = True
                u.save(update_fields=["password", "role", "email", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
