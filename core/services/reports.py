"""
Read-only aggregates for the manager statistics and the role dashboards.
"""
from __future__ import annotations

import datetime as dt
import math
from collections import defaultdict
from typing import Optional

from django.db.models import Avg, Count, F, Q, Sum
from django.utils import timezone

from core.models import (
    Appointment, Branch, Invoice, MedicalExamination, PackageInjection, Pet, SellProduct,
    Service, SingleInjection, User, SERVICE_PURCHASE,
)
from core.services import doctors as doctor_service
from core.services.audit import recent_actions
from core.services.inventory import get_stock_alerts
from core.services.membership import loyalty_points
from core.services.staff import current_branch

STATS_TYPES = ('branch', 'doctor')
DEFAULT_SATISFACTION = 4.9


def _net(prefix: str = '') -> F:
    return F(f'{prefix}unit_price') - F(f'{prefix}discount_amount')


def revenue_by_branch() -> list[dict]:
    rows = (
        Branch.objects.annotate(
            total_invoices=Count('invoices'),
            total_revenue=Sum('invoices__final_amount'),
        ).order_by('id')
    )
    return [{
        'branch_id': b.id,
        'branch_name': b.name,
        'total_invoices': b.total_invoices,
        'total_revenue': int(b.total_revenue or 0),
    } for b in rows]


def revenue_by_doctor() -> list[dict]:
    """Net service revenue attributed to the veterinarian who delivered it."""
    totals: dict[int, dict] = defaultdict(lambda: {'total_services': 0, 'total_revenue': 0})
    for model in (MedicalExamination, SingleInjection, PackageInjection):
        rows = (
            model.objects.filter(doctor__isnull=False)
            .values('doctor_id')
            .annotate(n=Count('service_id'), revenue=Sum(_net('service__')))
        )
        for r in rows:
            totals[r['doctor_id']]['total_services'] += r['n']
            totals[r['doctor_id']]['total_revenue'] += int(r['revenue'] or 0)
    doctors = User.objects.filter(role=User.ROLE_VET).order_by('id')
    return [{
        'doctor_id': d.id,
        'doctor_name': d.display_name,
        'total_services': totals[d.id]['total_services'],
        'total_revenue': totals[d.id]['total_revenue'],
    } for d in doctors]


def revenue_statistics(kind: str) -> list[dict]:
    return revenue_by_branch() if kind == 'branch' else revenue_by_doctor()


def appointment_statistics(branch: Optional[Branch] = None) -> list[dict]:
    qs = Branch.objects.all()
    if branch is not None:
        qs = qs.filter(pk=branch.pk)
    counts = {
        status: Count('appointments', filter=Q(appointments__status=status))
        for status, _ in Appointment.STATUS_CHOICES
    }
    rows = qs.annotate(total_appointments=Count('appointments'), **counts).order_by('id')
    return [{
        'branch_id': b.id,
        'branch_name': b.name,
        'total_appointments': b.total_appointments,
        **{status: getattr(b, status) for status, _ in Appointment.STATUS_CHOICES},
    } for b in rows]


def product_revenue_statistics(branch: Optional[Branch] = None) -> list[dict]:
    qs = SellProduct.objects.all()
    if branch is not None:
        qs = qs.filter(service__invoice__branch=branch)
    rows = (
        qs.values('service__invoice__branch_id', 'service__invoice__branch__name', 'product_id', 'product__name')
        .annotate(quantity_sold=Sum('quantity'), total_revenue=Sum(F('quantity') * F('unit_price')))
        .order_by('service__invoice__branch_id', '-total_revenue')
    )
    return [{
        'branch_id': r['service__invoice__branch_id'],
        'branch_name': r['service__invoice__branch__name'],
        'product_id': r['product_id'],
        'product_name': r['product__name'],
        'quantity_sold': int(r['quantity_sold'] or 0),
        'total_revenue': int(r['total_revenue'] or 0),
    } for r in rows]


def rating_statistics() -> list[dict]:
    data = []
    for b in Branch.objects.order_by('id'):
        services = Service.objects.filter(invoice__branch=b).aggregate(
            quality=Avg('quality_rating'),
            attitude=Avg('employee_attitude_rating'),
            rated=Count('id', filter=Q(quality_rating__isnull=False) | Q(employee_attitude_rating__isnull=False)),
        )
        invoices = Invoice.objects.filter(branch=b).aggregate(
            overall=Avg('overall_satisfaction_rating'),
            sale_attitude=Avg('sale_attitude_rating'),
        )
        data.append({
            'branch_id': b.id,
            'branch_name': b.name,
            'avg_service_quality': _round(services['quality']),
            'avg_employee_attitude': _round(services['attitude']),
            'avg_sale_attitude': _round(invoices['sale_attitude']),
            'avg_overall_satisfaction': _round(invoices['overall']),
            'rated_services': services['rated'],
        })
    return data


def _round(v) -> Optional[float]:
    return round(float(v), 2) if v is not None else None


def public_stats() -> dict:
    avg = Invoice.objects.aggregate(a=Avg('overall_satisfaction_rating'))['a']
    avg = float(avg) if avg is not None else DEFAULT_SATISFACTION
    return {
        'totalPets': Pet.objects.count(),
        # halves round up
        'satisfactionRate': math.floor(avg * 100 / 5 + 0.5),
        'emergencySupport': '24/7',
    }


def _today_window() -> tuple[dt.datetime, dt.datetime]:
    today = timezone.localdate()
    start = timezone.make_aware(dt.datetime.combine(today, dt.time.min))
    return start, start + dt.timedelta(days=1)


def customer_stats(user: User) -> dict:
    now = timezone.now()
    upcoming = (
        Appointment.objects.select_related('pet', 'branch', 'doctor', 'owner')
        .filter(owner=user, appointment_time__gte=now,
                status__in=(Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED))
        .order_by('appointment_time')
    )
    orders = Invoice.objects.filter(customer=user, services__service_type=SERVICE_PURCHASE).distinct()
    spent = Invoice.objects.filter(customer=user).aggregate(t=Sum('final_amount'))['t'] or 0
    return {
        'totalPets': Pet.objects.filter(owner=user).count(),
        'totalOrders': orders.count(),
        'upcomingAppointments': upcoming.count(),
        'loyaltyPoints': loyalty_points(spent),
        'membershipLevel': user.membership_level,
        'recentOrders': [
            {'id': o.id, 'finalAmount': o.final_amount, 'createdAt': o.created_at.isoformat()}
            for o in orders.order_by('-created_at')[:5]
        ],
        'upcomingAppointmentsList': [
            {
                'id': a.id,
                'petName': a.pet.name,
                'branchName': a.branch.name,
                'serviceType': a.service_type,
                'appointmentTime': a.appointment_time.isoformat(),
                'status': a.status,
            }
            for a in upcoming[:5]
        ],
    }


def manager_stats() -> dict:
    start, end = _today_window()
    revenue = Invoice.objects.aggregate(t=Sum('final_amount'))['t'] or 0
    recent = Appointment.objects.select_related('pet', 'owner', 'branch').order_by('-appointment_time')[:5]
    chart = []
    today = timezone.localdate()
    for offset in range(6, -1, -1):
        day = today - dt.timedelta(days=offset)
        day_start = timezone.make_aware(dt.datetime.combine(day, dt.time.min))
        day_end = day_start + dt.timedelta(days=1)
        agg = Invoice.objects.filter(created_at__gte=day_start, created_at__lt=day_end).aggregate(
            revenue=Sum('final_amount'), n=Count('id'),
        )
        chart.append({'date': day.isoformat(), 'revenue': int(agg['revenue'] or 0), 'invoices': agg['n']})
    return {
        'todayAppointments': Appointment.objects.filter(appointment_time__gte=start, appointment_time__lt=end).count(),
        'totalAppointments': Appointment.objects.count(),
        'totalInvoices': Invoice.objects.count(),
        'totalRevenue': int(revenue),
        'recentAppointments': [
            {
                'id': a.id,
                'petName': a.pet.name,
                'ownerName': a.owner.display_name,
                'branchName': a.branch.name,
                'appointmentTime': a.appointment_time.isoformat(),
                'status': a.status,
            }
            for a in recent
        ],
        'chartData': chart,
    }


def vet_stats(user: User) -> dict:
    return {
        'todaysAppointments': doctor_service.today_appointments(user).count(),
        'pendingRecords': doctor_service.pending_appointments_count(user),
        'assignedPets': len(doctor_service.assigned_pets(user)),
        'unreadNotifications': 0,
        'recentActivity': recent_actions(user=user),
    }


def receptionist_stats(user: User) -> dict:
    start, end = _today_window()
    branch = current_branch(user)
    appts = Appointment.objects.filter(appointment_time__gte=start, appointment_time__lt=end)
    invoices = Invoice.objects.filter(created_at__gte=start, created_at__lt=end)
    if branch is not None:
        appts = appts.filter(branch=branch)
        invoices = invoices.filter(branch=branch)
    return {
        'todaysAppointments': appts.count(),
        'pendingCheckins': appts.filter(status=Appointment.STATUS_PENDING).count(),
        'totalCustomers': User.objects.filter(role=User.ROLE_CUSTOMER).count(),
        'invoicesToday': invoices.count(),
        'recentActivity': recent_actions(user=user),
    }


def sales_stats(user: User) -> dict:
    start, end = _today_window()
    branch = current_branch(user)
    orders = Invoice.objects.filter(
        created_at__gte=start, created_at__lt=end, services__service_type=SERVICE_PURCHASE,
    ).distinct()
    if branch is not None:
        orders = orders.filter(branch=branch)
    return {
        'ordersToday': orders.count(),
        'revenueToday': int(sum(o.final_amount for o in orders)),
        'lowStockItems': len(get_stock_alerts(branch)) if branch is not None else 0,
    }


def dashboard_stats(user: User) -> dict:
    role = user.role
    if role == User.ROLE_CUSTOMER:
        return customer_stats(user)
    if role in (User.ROLE_MANAGER, User.ROLE_ADMIN):
        return manager_stats()
    if role == User.ROLE_VET:
        return vet_stats(user)
    if role == User.ROLE_RECEPTIONIST:
        return receptionist_stats(user)
    if role == User.ROLE_SALES:
        return sales_stats(user)
    return {'message': 'Dashboard not implemented for this role'}
