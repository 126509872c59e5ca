"""
Management command to populate the database with demo data.
"""
import random
from datetime import time, timedelta

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import (
    Appointment, Branch, EmployeeProfile, IncludeVaccine, Medicine, Mobilization, PackageInventory,
    Pet, Product, ProductInventory, Promotion, SellProduct, User, Vaccine, VaccineInventory, VaccinePackage,
    SERVICE_MEDICAL_EXAM, SERVICE_PURCHASE, SERVICE_SINGLE_VACCINE, SERVICE_VACCINE_PACKAGE,
)
from core.services.invoicing import create_invoice
from core.services.membership import recalculate_all_memberships


class Command(BaseCommand):
    help = 'Populate database with demo data'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=42, help='random seed for reproducible data')

    @transaction.atomic
    def handle(self, *args, **options):
        random.seed(options['seed'])
        self.stdout.write('Creating demo data...')

        branches = self.create_branches()
        staff = self.create_staff(branches)
        customers = self.create_customers()
        pets = self.create_pets(customers)
        products, vaccines, packages = self.create_catalog()
        self.create_medicines()
        self.create_inventory(branches, products, vaccines, packages)
        self.create_promotions(branches)
        self.create_appointments(pets, branches, staff)
        self.create_invoices(customers, branches, products)

        counters = recalculate_all_memberships()
        self.stdout.write(f"Memberships recalculated: {counters}")
        self.stdout.write(self.style.SUCCESS('Demo data created!'))

    def create_branches(self):
        branches_data = [
            {'name': 'PetCareX District 1', 'address': '12 Le Loi, District 1', 'phone': '0281234567'},
            {'name': 'PetCareX Thu Duc', 'address': '45 Vo Van Ngan, Thu Duc', 'phone': '0287654321'},
            {'name': 'PetCareX Binh Thanh', 'address': '88 Xo Viet Nghe Tinh, Binh Thanh', 'phone': '0283344556'},
        ]
        branches = []
        for data in branches_data:
            branch, _ = Branch.objects.get_or_create(
                name=data['name'],
                defaults={**data, 'opening_at': time(8, 0), 'closing_at': time(20, 0)},
            )
            branches.append(branch)
            self.stdout.write(f'Branch: {branch.name}')
        return branches

    def create_staff(self, branches):
        staff = {role: [] for role in (User.ROLE_RECEPTIONIST, User.ROLE_VET, User.ROLE_SALES, User.ROLE_MANAGER)}
        start = timezone.localdate() - timedelta(days=365)
        specializations = ['Internal medicine', 'Surgery', 'Dermatology', 'Vaccination']
        for i, branch in enumerate(branches, start=1):
            for role, count in ((User.ROLE_RECEPTIONIST, 1), (User.ROLE_VET, 2), (User.ROLE_SALES, 1)):
                for n in range(1, count + 1):
                    username = f'{role[:5]}{i}{n}'
                    user, created = User.objects.get_or_create(
                        username=username,
                        defaults={
                            'email': f'{username}@petcarex.vn',
                            'password': make_password('123456'),
                            'role': role,
                            'first_name': f'{role.title()} {i}.{n}',
                            'phone': f'09{random.randint(10000000, 99999999)}',
                        },
                    )
                    if created:
                        EmployeeProfile.objects.create(
                            user=user,
                            base_salary=random.choice([8_000_000, 10_000_000, 15_000_000]),
                            specialization=random.choice(specializations) if role == User.ROLE_VET else '',
                            hired_at=start,
                        )
                        Mobilization.objects.create(employee=user, branch=branch, start_date=start)
                    staff[role].append(user)
        manager, created = User.objects.get_or_create(
            username='manager',
            defaults={'email': 'manager@petcarex.vn', 'password': make_password('123456'),
                      'role': User.ROLE_MANAGER, 'first_name': 'Branch Manager'},
        )
        if created:
            EmployeeProfile.objects.create(user=manager, base_salary=25_000_000, hired_at=start)
            Mobilization.objects.create(employee=manager, branch=branches[0], start_date=start)
        staff[User.ROLE_MANAGER].append(manager)
        self.stdout.write(f'Staff: {sum(len(v) for v in staff.values())} accounts')
        return staff

    def create_customers(self):
        customers = []
        for i in range(1, 9):
            user, _ = User.objects.get_or_create(
                username=f'customer{i}',
                defaults={
                    'email': f'customer{i}@example.com',
                    'password': make_password('123456'),
                    'role': User.ROLE_CUSTOMER,
                    'first_name': f'Customer {i}',
                    'phone': f'09{random.randint(10000000, 99999999)}',
                },
            )
            customers.append(user)
        self.stdout.write(f'Customers: {len(customers)}')
        return customers

    def create_pets(self, customers):
        species = [('Dog', ['Poodle', 'Corgi', 'Husky']), ('Cat', ['Persian', 'British Shorthair', 'Siamese'])]
        names = ['Milo', 'Luna', 'Bông', 'Mực', 'Lucky', 'Kem', 'Tom', 'Na']
        pets = []
        for i, owner in enumerate(customers):
            for n in range(random.randint(1, 2)):
                kind, breeds = random.choice(species)
                pet, _ = Pet.objects.get_or_create(
                    owner=owner,
                    name=names[(i + n) % len(names)],
                    defaults={
                        'species': kind,
                        'breed': random.choice(breeds),
                        'gender': random.choice(['male', 'female']),
                        'date_of_birth': timezone.localdate() - timedelta(days=random.randint(120, 3000)),
                        'weight': round(random.uniform(2, 25), 1),
                    },
                )
                pets.append(pet)
        self.stdout.write(f'Pets: {len(pets)}')
        return pets

    def create_catalog(self):
        products_data = [
            ('Royal Canin Puppy 2kg', 'food', 450_000),
            ('Whiskas Tuna 1.2kg', 'food', 180_000),
            ('Chew Bone', 'toy', 60_000),
            ('Feather Teaser', 'toy', 45_000),
            ('Leather Collar', 'accessory', 150_000),
            ('Travel Carrier', 'accessory', 650_000),
            ('Flea Drops', 'medication', 220_000),
        ]
        products = [
            Product.objects.get_or_create(name=name, defaults={'product_type': kind, 'price': price})[0]
            for name, kind, price in products_data
        ]
        vaccines_data = [
            ('Rabies', 250_000, 'Boehringer Ingelheim'),
            ('DHPPi', 300_000, 'MSD Animal Health'),
            ('Feline FVRCP', 280_000, 'Zoetis'),
            ('Leptospirosis', 200_000, 'Virbac'),
        ]
        vaccines = [
            Vaccine.objects.get_or_create(name=name, defaults={'price': price, 'manufacturer': maker})[0]
            for name, price, maker in vaccines_data
        ]
        packages = []
        for name, price, cycle, milestone, included in (
            ('Puppy Starter', 900_000, 3, 2, [vaccines[1], vaccines[3]]),
            ('Adult Dog Yearly', 600_000, 2, 12, [vaccines[0], vaccines[1]]),
            ('Kitten Starter', 750_000, 3, 2, [vaccines[2]]),
        ):
            package, created = VaccinePackage.objects.get_or_create(
                name=name, defaults={'price': price, 'cycle': cycle, 'monthly_milestone': milestone},
            )
            if created:
                for v in included:
                    IncludeVaccine.objects.create(package=package, vaccine=v, dosage=1)
            packages.append(package)
        self.stdout.write(f'Catalog: {len(products)} products, {len(vaccines)} vaccines, {len(packages)} packages')
        return products, vaccines, packages

    def create_medicines(self):
        for name, price in (('Amoxicillin 250mg', 15_000), ('Meloxicam 1.5mg', 20_000),
                            ('Metronidazole 250mg', 12_000), ('Prednisolone 5mg', 8_000)):
            Medicine.objects.get_or_create(name=name, defaults={'price': price})

    def create_inventory(self, branches, products, vaccines, packages):
        now = timezone.now()
        for branch in branches:
            for p in products:
                ProductInventory.objects.get_or_create(
                    branch=branch, product=p,
                    defaults={'quantity': random.choice([0, 2, 5, 15, 30, 50]), 'last_restocked': now},
                )
            for v in vaccines:
                VaccineInventory.objects.get_or_create(
                    branch=branch, vaccine=v, defaults={'quantity': random.randint(5, 40), 'last_restocked': now},
                )
            for pk in packages:
                PackageInventory.objects.get_or_create(
                    branch=branch, package=pk, defaults={'quantity': random.randint(3, 20), 'last_restocked': now},
                )

    def create_promotions(self, branches):
        today = timezone.localdate()
        Promotion.objects.get_or_create(
            description='Chain-wide vaccination month',
            defaults={
                'target_audience': Promotion.AUDIENCE_ALL,
                'applicable_service_types': [SERVICE_SINGLE_VACCINE, SERVICE_VACCINE_PACKAGE],
                'discount_rate': 10,
                'start_date': today - timedelta(days=10),
                'end_date': today + timedelta(days=20),
            },
        )
        Promotion.objects.get_or_create(
            description='VIP shopping bonus',
            defaults={
                'target_audience': Promotion.AUDIENCE_VIP,
                'applicable_service_types': [SERVICE_PURCHASE],
                'discount_rate': 15,
                'start_date': today - timedelta(days=30),
                'end_date': today + timedelta(days=60),
            },
        )
        Promotion.objects.get_or_create(
            description=f'{branches[0].name} check-up week',
            defaults={
                'target_audience': Promotion.AUDIENCE_LOYAL,
                'applicable_service_types': [SERVICE_MEDICAL_EXAM],
                'discount_rate': 5,
                'start_date': today - timedelta(days=3),
                'end_date': today + timedelta(days=4),
                'branch': branches[0],
            },
        )

    def create_appointments(self, pets, branches, staff):
        if Appointment.objects.exists():
            return
        now = timezone.now().replace(minute=0, second=0, microsecond=0)
        vets = staff[User.ROLE_VET]
        service_types = [SERVICE_MEDICAL_EXAM, SERVICE_SINGLE_VACCINE, SERVICE_VACCINE_PACKAGE]
        for i, pet in enumerate(pets):
            branch_index = i % len(branches)
            # two vets per branch, in branch order
            doctor = vets[branch_index * 2 + i % 2]
            past = now - timedelta(days=random.randint(1, 60), hours=i)
            future = now + timedelta(days=random.randint(1, 14), hours=i)
            Appointment.objects.create(
                owner=pet.owner, pet=pet, branch=branches[branch_index], doctor=doctor,
                appointment_time=past, service_type=random.choice(service_types),
                status=Appointment.STATUS_COMPLETED, reason='Routine visit',
            )
            Appointment.objects.create(
                owner=pet.owner, pet=pet, branch=branches[branch_index], doctor=doctor,
                appointment_time=future, service_type=random.choice(service_types),
                status=random.choice([Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED]),
                reason='Follow-up',
            )
        self.stdout.write(f'Appointments: {Appointment.objects.count()}')

    def create_invoices(self, customers, branches, products):
        if SellProduct.objects.exists():
            return
        for customer in customers:
            for _ in range(random.randint(1, 3)):
                branch = random.choice(branches)
                picked = random.sample(products, k=2)
                quantities = [random.randint(1, 4) for _ in picked]
                subtotal = sum(p.price * q for p, q in zip(picked, quantities))
                invoice, services, _ = create_invoice(
                    customer=customer, branch=branch,
                    payment_method=random.choice(['cash', 'bank_transfer']),
                    lines=[{'service_type': SERVICE_PURCHASE, 'unit_price': subtotal}],
                )
                for p, q in zip(picked, quantities):
                    SellProduct.objects.create(service=services[0], product=p, quantity=q, unit_price=p.price)
                invoice.overall_satisfaction_rating = random.randint(3, 5)
                invoice.save(update_fields=['overall_satisfaction_rating'])
        self.stdout.write('Invoices created')
