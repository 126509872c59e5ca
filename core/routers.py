"""
URL mappings for the PetCareX backend API.

This module registers all API endpoints with their corresponding view
functions.  Paths follow the front-end's ``/api/...`` routes; trailing
slashes are deliberately omitted.  ``/api/me/...`` requests are rewritten
to ``/api/user/...`` by ``core.middleware.LegacyPrefixMiddleware``.
"""
from django.urls import path, include

from .auth_views import jwt_refresh_view, jwt_logout_view, login_view, register_view, me_view
from .views import (
    appointments,
    branches,
    catalog,
    customer,
    dashboard,
    doctor,
    health,
    inventory,
    manager,
    orders,
    pets,
    products,
    promotions,
    receptionist,
    sales,
    staff,
)


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),
    # Public storefront
    path('api/products', products.products, name='products'),
    path('api/products/<int:product_id>', products.product_detail, name='product_detail'),
    path('api/search', products.search, name='search'),
    path('api/dashboard/public-stats', dashboard.dashboard_public_stats, name='dashboard_public_stats'),
    path('api/dashboard/stats', dashboard.dashboard_role_stats, name='dashboard_stats'),
    # Customer self-service
    path('api/user/profile', customer.my_profile, name='user_profile'),
    path('api/user/pets', customer.my_pets, name='user_pets'),
    path('api/user/pets/<int:pet_id>', customer.my_pet_detail, name='user_pet_detail'),
    path('api/user/pets/<int:pet_id>/history', customer.my_pet_history, name='user_pet_history'),
    path('api/user/appointments', customer.my_appointments, name='user_appointments'),
    path('api/user/orders', customer.my_orders, name='user_orders'),
    path('api/user/membership', customer.my_membership, name='user_membership'),
    path('api/user/invoices/<int:invoice_id>/rating', customer.rate_my_invoice, name='user_invoice_rating'),
    path('api/user/services/<int:service_id>/rating', customer.rate_my_service, name='user_service_rating'),
    # Appointments & orders
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:appointment_id>/cancel', appointments.appointment_cancel,
         name='appointment_cancel'),
    path('api/orders/buy', orders.order_buy, name='order_buy'),
    # Promotions
    path('api/promotions', promotions.promotions, name='promotions'),
    path('api/promotions/discount', promotions.promotion_discount, name='promotion_discount'),
    path('api/promotions/quote', promotions.promotion_quote, name='promotion_quote'),
    path('api/promotions/<int:promotion_id>', promotions.promotion_detail, name='promotion_detail'),
    # Veterinarian
    path('api/doctor/today-appointments', doctor.today_appointments, name='doctor_today_appointments'),
    path('api/doctor/assigned-pets', doctor.assigned_pets, name='doctor_assigned_pets'),
    path('api/doctor/pets-by-type', doctor.pets_by_type, name='doctor_pets_by_type'),
    path('api/doctor/pending-count', doctor.pending_count, name='doctor_pending_count'),
    path('api/doctor/appointments/<int:appointment_id>/confirm', doctor.confirm_appointment,
         name='doctor_confirm_appointment'),
    path('api/doctor/appointments/<int:appointment_id>/cancel', doctor.cancel_appointment,
         name='doctor_cancel_appointment'),
    path('api/doctor/exam-records', doctor.exam_records, name='doctor_exam_records'),
    path('api/doctor/injections/single', doctor.single_injection, name='doctor_single_injection'),
    path('api/doctor/injections/package', doctor.package_injection, name='doctor_package_injection'),
    path('api/doctor/vaccine-inventory', doctor.vaccine_inventory, name='doctor_vaccine_inventory'),
    path('api/doctor/package-inventory', doctor.package_inventory, name='doctor_package_inventory'),
    path('api/doctor/medical-records/<int:pet_id>', doctor.medical_records, name='doctor_medical_records'),
    path('api/doctor/pets/<int:pet_id>/history', doctor.pet_history, name='doctor_pet_history'),
    path('api/doctor/medicines', doctor.medicines, name='doctor_medicines'),
    # Receptionist
    path('api/receptionist/today-appointments', receptionist.today_appointments,
         name='receptionist_today_appointments'),
    path('api/receptionist/appointments', receptionist.branch_appointments, name='receptionist_appointments'),
    path('api/receptionist/appointments/<int:appointment_id>/checkin', receptionist.checkin,
         name='receptionist_checkin'),
    path('api/receptionist/customers/search', receptionist.search_customers, name='receptionist_customer_search'),
    path('api/receptionist/customers/<int:customer_id>/pets', receptionist.customer_pets,
         name='receptionist_customer_pets'),
    path('api/receptionist/doctors', receptionist.available_doctors, name='receptionist_doctors'),
    path('api/receptionist/my-branch', receptionist.my_branch, name='receptionist_my_branch'),
    path('api/receptionist/appointment', receptionist.book_for_customer, name='receptionist_book'),
    # Sales
    path('api/sales/my-branch', sales.my_branch, name='sales_my_branch'),
    path('api/sales/inventory', sales.inventory, name='sales_inventory'),
    path('api/sales/inventory/update', sales.update_stock, name='sales_update_stock'),
    path('api/sales/inventory/adjust', sales.adjust, name='sales_adjust_stock'),
    path('api/sales/today-sales', sales.today_sales, name='sales_today'),
    path('api/sales/stats', sales.stats, name='sales_stats'),
    path('api/sales/service-invoices', sales.service_invoices, name='sales_service_invoices'),
    path('api/sales/stock-alerts', sales.stock_alerts, name='sales_stock_alerts'),
    # Manager
    path('api/manager/statistics/revenue/<str:kind>', manager.revenue_statistics, name='manager_revenue'),
    path('api/manager/statistics/appointments', manager.appointment_statistics, name='manager_appointments'),
    path('api/manager/statistics/appointments/<int:branch_id>', manager.appointment_statistics,
         name='manager_branch_appointments'),
    path('api/manager/statistics/products', manager.product_statistics, name='manager_products'),
    path('api/manager/statistics/products/<int:branch_id>', manager.product_statistics,
         name='manager_branch_products'),
    path('api/manager/statistics/ratings', manager.rating_statistics, name='manager_ratings'),
    path('api/manager/membership/stats', manager.membership_statistics, name='manager_membership_stats'),
    path('api/manager/membership/recalculate', manager.membership_recalculate,
         name='manager_membership_recalculate'),
    # Branches, staff, pets, catalog, inventory
    path('api/branch', branches.branches, name='branches'),
    path('api/branch/<int:branch_id>', branches.branch_detail, name='branch_detail'),
    path('api/staff', staff.staff, name='staff'),
    path('api/staff/transfers', staff.transfers, name='staff_transfers'),
    path('api/staff/<int:staff_id>/transfer', staff.staff_transfer, name='staff_transfer'),
    path('api/pets', pets.list_pets, name='pets'),
    path('api/pets/<int:pet_id>', pets.pet_detail, name='pet_detail'),
    path('api/catalog/doctors', catalog.doctors, name='catalog_doctors'),
    path('api/catalog/vaccines', catalog.vaccines, name='catalog_vaccines'),
    path('api/catalog/vaccine-packages', catalog.vaccine_packages, name='catalog_vaccine_packages'),
    path('api/inventory/branch', inventory.branch_inventory, name='inventory_branch'),
    path('api/inventory/alerts', inventory.stock_alerts, name='inventory_alerts'),
]
