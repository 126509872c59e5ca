"""
Django admin registrations for the core models.

Lets superusers inspect clinic data through ``/admin/``: branches and
staff assignments, customers and pets, the catalogue with its branch
stock, promotions and billed services.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AppointmentTransition,
    AuditEvent,
    Branch,
    EmployeeProfile,
    IncludeVaccine,
    Invoice,
    MedicalExamination,
    Medicine,
    Mobilization,
    PackageInjection,
    PackageInventory,
    Pet,
    Prescription,
    Product,
    ProductInventory,
    Promotion,
    SellProduct,
    Service,
    SingleInjection,
    StaffTransfer,
    User,
    Vaccine,
    VaccineInventory,
    VaccinePackage,
)


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'phone', 'opening_at', 'closing_at')
    search_fields = ('name', 'address')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'membership_level', 'yearly_spending', 'is_active')
    list_filter = ('role', 'membership_level', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'email', 'phone')


@admin.register(EmployeeProfile)
class EmployeeProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialization', 'base_salary', 'hired_at')
    search_fields = ('user__username', 'specialization')


@admin.register(Mobilization)
class MobilizationAdmin(admin.ModelAdmin):
    list_display = ('employee', 'branch', 'start_date', 'end_date')
    list_filter = ('branch',)


@admin.register(StaffTransfer)
class StaffTransferAdmin(admin.ModelAdmin):
    list_display = ('employee', 'from_branch', 'to_branch', 'transfer_date', 'approved_by')
    list_filter = ('to_branch',)


@admin.register(Pet)
class PetAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'species', 'breed', 'owner')
    search_fields = ('name', 'owner__username', 'owner__first_name')


class AppointmentTransitionInline(admin.TabularInline):
    model = AppointmentTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'reason', 'timestamp')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'pet', 'owner', 'branch', 'doctor', 'service_type', 'appointment_time', 'status')
    list_filter = ('status', 'service_type', 'branch')
    inlines = [AppointmentTransitionInline]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'product_type', 'price')
    list_filter = ('product_type',)
    search_fields = ('name',)


class IncludeVaccineInline(admin.TabularInline):
    model = IncludeVaccine
    extra = 0


@admin.register(VaccinePackage)
class VaccinePackageAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'price', 'cycle', 'monthly_milestone')
    inlines = [IncludeVaccineInline]


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ('id', 'description', 'discount_rate', 'target_audience', 'branch', 'start_date', 'end_date',
                    'is_active')
    list_filter = ('is_active', 'target_audience', 'branch')


class ServiceInline(admin.TabularInline):
    model = Service
    extra = 0


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'branch', 'payment_method', 'total_amount', 'total_discount', 'final_amount',
                    'created_at')
    list_filter = ('branch', 'payment_method')
    inlines = [ServiceInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action',)


for model in (Medicine, Vaccine, ProductInventory, VaccineInventory, PackageInventory, Service, SellProduct,
              MedicalExamination, Prescription, SingleInjection, PackageInjection):
    admin.site.register(model)
