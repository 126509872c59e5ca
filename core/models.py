"""
Database models for the PetCareX backend.

These models capture the clinic chain: branches and the staff assigned
to them, customers and their pets, appointments, clinical services
(examinations and vaccinations), the product/vaccine catalog with
per-branch inventory, promotions and invoices.  Money amounts are whole
VND and stored as integers.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


SERVICE_PURCHASE = 'purchase'
SERVICE_SINGLE_VACCINE = 'single-vaccine'
SERVICE_VACCINE_PACKAGE = 'vaccine-package'
SERVICE_MEDICAL_EXAM = 'medical-exam'
SERVICE_TYPE_CHOICES = [
    (SERVICE_PURCHASE, 'Product purchase'),
    (SERVICE_SINGLE_VACCINE, 'Single-dose vaccination'),
    (SERVICE_VACCINE_PACKAGE, 'Vaccine package'),
    (SERVICE_MEDICAL_EXAM, 'Medical examination'),
]
# Clinical services a customer can book an appointment for
APPOINTMENT_SERVICE_CHOICES = [c for c in SERVICE_TYPE_CHOICES if c[0] != SERVICE_PURCHASE]


class Branch(models.Model):
    """A physical clinic location.

    Inventory, staff assignments and branch promotions are all scoped
    to a branch.
    """
    name = models.CharField(max_length=255, unique=True)
    address = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    opening_at = models.TimeField(null=True, blank=True)
    closing_at = models.TimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class User(AbstractUser):
    """Custom user model shared by customers and staff.

    Customers carry their membership tier and the spending it was
    derived from; staff accounts keep their HR data on
    :class:`EmployeeProfile` and their branch on :class:`Mobilization`.
    """
    ROLE_CUSTOMER = 'customer'
    ROLE_RECEPTIONIST = 'receptionist'
    ROLE_VET = 'veterinarian'
    ROLE_SALES = 'sales'
    ROLE_MANAGER = 'manager'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_CUSTOMER, 'Customer'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
        (ROLE_VET, 'Veterinarian'),
        (ROLE_SALES, 'Sales staff'),
        (ROLE_MANAGER, 'Branch manager'),
        (ROLE_ADMIN, 'Administrator'),
    ]

    LEVEL_BASIC = 'Basic'
    LEVEL_LOYAL = 'Loyal'
    LEVEL_VIP = 'VIP'
    LEVEL_CHOICES = [
        (LEVEL_BASIC, 'Basic'),
        (LEVEL_LOYAL, 'Loyal'),
        (LEVEL_VIP, 'VIP'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CUSTOMER, db_index=True)
    phone = models.CharField(max_length=20, blank=True, db_index=True)
    gender = models.CharField(max_length=10, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    citizen_id = models.CharField(max_length=20, blank=True)
    membership_level = models.CharField(max_length=10, choices=LEVEL_CHOICES, default=LEVEL_BASIC, db_index=True)
    yearly_spending = models.BigIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username


class EmployeeProfile(models.Model):
    """HR data for a staff account."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='employee_profile')
    base_salary = models.BigIntegerField(default=0)
    specialization = models.CharField(max_length=255, blank=True)
    license_number = models.CharField(max_length=50, blank=True)
    hired_at = models.DateField(null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.user.username} profile"


class Mobilization(models.Model):
    """Assignment of an employee to a branch over a date range.

    An open ended assignment has no ``end_date``.  The assignment that
    covers today is the employee's current branch.
    """
    employee = models.ForeignKey(User, on_delete=models.CASCADE, related_name='mobilizations')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='mobilizations')
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['employee', 'start_date', 'end_date']),
            models.Index(fields=['branch', 'start_date', 'end_date']),
        ]

    def __str__(self) -> str:
        return f"Mobilization(u={self.employee_id}, b={self.branch_id}, {self.start_date}~{self.end_date or ''})"


class StaffTransfer(models.Model):
    """History entry for moving an employee between branches."""
    employee = models.ForeignKey(User, on_delete=models.CASCADE, related_name='transfers')
    from_branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.SET_NULL, related_name='transfers_out'
    )
    to_branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='transfers_in')
    transfer_date = models.DateField()
    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    approved_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='approved_transfers'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.employee_id}: {self.from_branch_id} → {self.to_branch_id} @ {self.transfer_date}"


class Pet(models.Model):
    GENDER_CHOICES = [('male', 'Male'), ('female', 'Female'), ('unknown', 'Unknown')]

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='pets')
    name = models.CharField(max_length=100)
    species = models.CharField(max_length=50)
    breed = models.CharField(max_length=100, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, default='unknown')
    health_status = models.CharField(max_length=100, blank=True, default='healthy')
    weight = models.FloatField(null=True, blank=True)
    color = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.species})"


class Appointment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    pet = models.ForeignKey(Pet, on_delete=models.CASCADE, related_name='appointments')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_appointments'
    )
    appointment_time = models.DateTimeField(db_index=True)
    service_type = models.CharField(max_length=20, choices=APPOINTMENT_SERVICE_CHOICES, default=SERVICE_MEDICAL_EXAM)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reason = models.TextField(blank=True)
    cancelled_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['branch', 'appointment_time']),
            models.Index(fields=['doctor', 'appointment_time']),
        ]

    def __str__(self) -> str:
        return f"Appointment #{self.pk} {self.pet_id} @ {self.appointment_time:%F %H:%M}"


class AppointmentTransition(models.Model):
    """Records a status transition for an appointment."""
    appointment = models.ForeignKey(Appointment, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointment_transitions'
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.appointment_id}: {self.from_status} → {self.to_status}"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class Product(models.Model):
    TYPE_CHOICES = [
        ('food', 'Food'),
        ('toy', 'Toy'),
        ('accessory', 'Accessory'),
        ('medication', 'Medication'),
    ]
    name = models.CharField(max_length=255, db_index=True)
    product_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    price = models.BigIntegerField()
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Medicine(models.Model):
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    price = models.BigIntegerField(default=0)

    def __str__(self) -> str:
        return self.name


class Vaccine(models.Model):
    name = models.CharField(max_length=255, unique=True)
    price = models.BigIntegerField()
    manufacturer = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class VaccinePackage(models.Model):
    """A bundle of vaccines given over ``cycle`` monthly injections."""
    name = models.CharField(max_length=255, unique=True)
    price = models.BigIntegerField()
    cycle = models.PositiveIntegerField(default=1)
    monthly_milestone = models.PositiveIntegerField(default=0, help_text="Pet age in months the package targets")
    description = models.TextField(blank=True)
    vaccines = models.ManyToManyField(Vaccine, through='IncludeVaccine', related_name='packages')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class IncludeVaccine(models.Model):
    package = models.ForeignKey(VaccinePackage, on_delete=models.CASCADE, related_name='included')
    vaccine = models.ForeignKey(Vaccine, on_delete=models.CASCADE, related_name='included_in')
    dosage = models.PositiveIntegerField(default=1)

    class Meta:
        unique_together = [('package', 'vaccine')]


# ---------------------------------------------------------------------------
# Branch inventory
# ---------------------------------------------------------------------------

class InventoryRow(models.Model):
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='+')
    quantity = models.PositiveIntegerField(default=0)
    last_restocked = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ProductInventory(InventoryRow):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='inventory')

    class Meta:
        unique_together = [('branch', 'product')]


class VaccineInventory(InventoryRow):
    vaccine = models.ForeignKey(Vaccine, on_delete=models.CASCADE, related_name='inventory')

    class Meta:
        unique_together = [('branch', 'vaccine')]


class PackageInventory(InventoryRow):
    package = models.ForeignKey(VaccinePackage, on_delete=models.CASCADE, related_name='inventory')

    class Meta:
        unique_together = [('branch', 'package')]


# ---------------------------------------------------------------------------
# Promotions & invoicing
# ---------------------------------------------------------------------------

class Promotion(models.Model):
    """A discount campaign.  ``branch`` is empty for chain-wide promotions."""
    AUDIENCE_ALL = 'All'
    AUDIENCE_LOYAL = 'Loyal+'
    AUDIENCE_VIP = 'VIP+'
    AUDIENCE_CHOICES = [
        (AUDIENCE_ALL, 'All customers'),
        (AUDIENCE_LOYAL, 'Loyal and above'),
        (AUDIENCE_VIP, 'VIP only'),
    ]

    description = models.CharField(max_length=500)
    target_audience = models.CharField(max_length=10, choices=AUDIENCE_CHOICES, default=AUDIENCE_ALL)
    applicable_service_types = models.JSONField(default=list)
    discount_rate = models.PositiveSmallIntegerField()
    start_date = models.DateField()
    end_date = models.DateField()
    is_active = models.BooleanField(default=True, db_index=True)
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.CASCADE, related_name='promotions'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['is_active', 'start_date', 'end_date'])]

    def __str__(self) -> str:
        scope = f"branch {self.branch_id}" if self.branch_id else "global"
        return f"{self.description[:30]} ({self.discount_rate}%, {scope})"


class Invoice(models.Model):
    PAYMENT_CASH = 'cash'
    PAYMENT_BANK_TRANSFER = 'bank_transfer'
    PAYMENT_CHOICES = [
        (PAYMENT_CASH, 'Cash'),
        (PAYMENT_BANK_TRANSFER, 'Bank transfer'),
    ]

    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='created_invoices'
    )
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='invoices')
    customer = models.ForeignKey(User, on_delete=models.PROTECT, related_name='invoices')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_CHOICES, default=PAYMENT_CASH)
    total_amount = models.BigIntegerField(default=0)
    total_discount = models.BigIntegerField(default=0)
    final_amount = models.BigIntegerField(default=0)
    sale_attitude_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    overall_satisfaction_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=['customer', 'created_at']),
            models.Index(fields=['branch', 'created_at']),
        ]

    def __str__(self) -> str:
        return f"Invoice #{self.pk} {self.final_amount} VND"


class Service(models.Model):
    """One delivered service instance, billed on an invoice."""
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name='services')
    service_type = models.CharField(max_length=20, choices=SERVICE_TYPE_CHOICES, db_index=True)
    unit_price = models.BigIntegerField(default=0)
    discount_amount = models.BigIntegerField(default=0)
    applied_promotions = models.JSONField(default=list, blank=True)
    quality_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    employee_attitude_rating = models.PositiveSmallIntegerField(null=True, blank=True)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Service #{self.pk} {self.service_type}"


class SellProduct(models.Model):
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name='products')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sales')
    quantity = models.PositiveIntegerField()
    unit_price = models.BigIntegerField()


# ---------------------------------------------------------------------------
# Clinical records
# ---------------------------------------------------------------------------

class MedicalExamination(models.Model):
    service = models.OneToOneField(Service, on_delete=models.CASCADE, related_name='examination')
    pet = models.ForeignKey(Pet, on_delete=models.CASCADE, related_name='examinations')
    doctor = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='examinations')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='examinations'
    )
    symptoms = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    conclusion = models.TextField(blank=True)
    appointment_date = models.DateTimeField(null=True, blank=True)
    weight = models.FloatField(null=True, blank=True)
    temperature = models.FloatField(null=True, blank=True)
    blood_pressure = models.CharField(max_length=20, blank=True)
    follow_up_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)


class Prescription(models.Model):
    examination = models.ForeignKey(MedicalExamination, on_delete=models.CASCADE, related_name='prescriptions')
    medicine = models.ForeignKey(Medicine, on_delete=models.PROTECT, related_name='prescriptions')
    quantity = models.PositiveIntegerField(default=1)
    dosage = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=100, blank=True)
    instructions = models.TextField(blank=True)


class SingleInjection(models.Model):
    service = models.OneToOneField(Service, on_delete=models.CASCADE, related_name='single_injection')
    pet = models.ForeignKey(Pet, on_delete=models.CASCADE, related_name='single_injections')
    doctor = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='single_injections')
    vaccine = models.ForeignKey(Vaccine, on_delete=models.PROTECT, related_name='single_injections')
    dosage = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)


class PackageInjection(models.Model):
    """One injection of a vaccine package cycle."""
    service = models.OneToOneField(Service, on_delete=models.CASCADE, related_name='package_injection')
    pet = models.ForeignKey(Pet, on_delete=models.CASCADE, related_name='package_injections')
    doctor = models.ForeignKey(User, null=True, on_delete=models.SET_NULL, related_name='package_injections')
    package = models.ForeignKey(VaccinePackage, on_delete=models.PROTECT, related_name='injections')
    injection_number = models.PositiveIntegerField(default=1)
    next_injection_date = models.DateField(null=True, blank=True)
    is_completed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]
