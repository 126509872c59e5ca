# core/management/commands/ensure_test_users.py
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import Branch, EmployeeProfile, Mobilization, User

TEST_SET = [
    ("customer1", User.ROLE_CUSTOMER),
    ("reception1", User.ROLE_RECEPTIONIST),
    ("vet1", User.ROLE_VET),
    ("sales1", User.ROLE_SALES),
    ("manager1", User.ROLE_MANAGER),
    ("admin1", User.ROLE_ADMIN),
]


class Command(BaseCommand):
    help = "Ensure one test account per role exists with password=123456 (idempotent)."

    @transaction.atomic
    def handle(self, *args, **opts):
        branch = Branch.objects.order_by("id").first()
        if branch is None:
            branch = Branch.objects.create(name="PetCareX Test Branch", address="1 Test Street")
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role,
                    "password": make_password("123456"),
                    "is_active": True,
                    "email": f"{username}@petcarex.test",
                    "first_name": username.title(),
                },
            )
            if not created:
                # reset password, activation and role
                u.password = make_password("123456")
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            if role != User.ROLE_CUSTOMER:
                EmployeeProfile.objects.get_or_create(user=u, defaults={"hired_at": timezone.localdate()})
                if not Mobilization.objects.filter(employee=u).exists():
                    Mobilization.objects.create(employee=u, branch=branch, start_date=timezone.localdate())
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
