"""
Integration tests for the PetCareX API.

These tests walk the main flows of each role: customers managing pets,
booking and buying, veterinarians recording services, receptionists
checking customers in, sales staff keeping stock and managers reading
statistics.  The tests use Django REST Framework's APIClient within the
APITestCase base class.

To run the tests:

```
pytest -q core/tests
```
"""
import datetime as dt

from dateutil.relativedelta import relativedelta
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from core.models import (
    Appointment, AppointmentTransition, Branch, Invoice, Medicine, Mobilization, PackageInventory, Pet,
    Product, ProductInventory, Promotion, SellProduct, User, Vaccine, VaccineInventory, VaccinePackage,
)


class PetCareAPITests(APITestCase):
    def setUp(self) -> None:
        """Two branches with staff, one customer with a pet, stocked catalog."""
        cache.clear()
        self.branch = Branch.objects.create(name='Central', address='1 Main St')
        self.branch2 = Branch.objects.create(name='Riverside', address='9 River Rd')
        start = timezone.localdate() - dt.timedelta(days=30)

        self.customer = User.objects.create_user(
            username='customer1', password='P@ssw0rd1', role=User.ROLE_CUSTOMER,
            email='customer1@example.com', first_name='Lan', phone='0901234567',
        )
        self.other_customer = User.objects.create_user(
            username='customer2', password='P@ssw0rd1', role=User.ROLE_CUSTOMER, first_name='Hoa',
        )
        self.vet = self._employee('vet1', User.ROLE_VET, self.branch, start)
        self.vet2 = self._employee('vet2', User.ROLE_VET, self.branch2, start)
        self.receptionist = self._employee('reception1', User.ROLE_RECEPTIONIST, self.branch, start)
        self.sales = self._employee('sales1', User.ROLE_SALES, self.branch, start)
        self.manager = self._employee('manager1', User.ROLE_MANAGER, self.branch, start)

        self.pet = Pet.objects.create(owner=self.customer, name='Milo', species='Dog', breed='Corgi')
        self.other_pet = Pet.objects.create(owner=self.other_customer, name='Tom', species='Cat')

        self.food = Product.objects.create(name='Puppy Food', product_type='food', price=450_000)
        self.toy = Product.objects.create(name='Chew Bone', product_type='toy', price=60_000)
        ProductInventory.objects.create(branch=self.branch, product=self.food, quantity=10)
        ProductInventory.objects.create(branch=self.branch, product=self.toy, quantity=2)

        self.vaccine = Vaccine.objects.create(name='Rabies', price=250_000)
        VaccineInventory.objects.create(branch=self.branch, vaccine=self.vaccine, quantity=1)
        self.package = VaccinePackage.objects.create(name='Puppy Starter', price=900_000, cycle=3)
        PackageInventory.objects.create(branch=self.branch, package=self.package, quantity=5)
        self.medicine = Medicine.objects.create(name='Amoxicillin', price=15_000)

        self.slot = (timezone.now() + dt.timedelta(days=2)).replace(minute=0, second=0, microsecond=0)

    def _employee(self, username, role, branch, start):
        u = User.objects.create_user(username=username, password='P@ssw0rd1', role=role, first_name=username.title())
        Mobilization.objects.create(employee=u, branch=branch, start_date=start)
        return u

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def _appointment(self, **kw) -> Appointment:
        fields = dict(owner=self.customer, pet=self.pet, branch=self.branch, doctor=self.vet,
                      appointment_time=self.slot, service_type='medical-exam')
        fields.update(kw)
        return Appointment.objects.create(**fields)

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------
    def test_customer_pet_crud(self):
        client = self.authenticate(self.customer)
        response = client.post(reverse('user_pets'), {'name': 'Luna', 'species': 'Cat', 'gender': 'female'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        pet_id = response.data['data']['id']

        response = client.get(reverse('user_pets'))
        self.assertEqual([p['name'] for p in response.data['data']], ['Luna', 'Milo'])

        response = client.put(reverse('user_pet_detail', args=[pet_id]), {'weight': 4.5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['weight'], 4.5)

        response = client.delete(reverse('user_pet_detail', args=[pet_id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Pet.objects.filter(id=pet_id).exists())

    def test_customer_cannot_see_other_customers_pet(self):
        client = self.authenticate(self.customer)
        response = client.get(reverse('user_pet_detail', args=[self.other_pet.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'not_found')

    def test_pet_with_open_appointment_cannot_be_deleted(self):
        self._appointment()
        client = self.authenticate(self.customer)
        response = client.delete(reverse('user_pet_detail', args=[self.pet.id]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Pet.objects.filter(id=self.pet.id).exists())

    def test_staff_cannot_use_customer_endpoints(self):
        client = self.authenticate(self.vet)
        response = client.get(reverse('user_pets'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_legacy_me_prefix_is_served(self):
        client = self.authenticate(self.customer)
        response = client.get('/api/me/pets')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------
    def test_customer_books_and_cancels_appointment(self):
        client = self.authenticate(self.customer)
        payload = {
            'pet_id': self.pet.id,
            'branch_id': self.branch.id,
            'doctor_id': self.vet.id,
            'appointment_time': self.slot.isoformat(),
            'service_type': 'medical-exam',
            'reason': 'Coughing',
        }
        response = client.post(reverse('appointments'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        appt_id = response.data['data']['id']
        self.assertEqual(response.data['data']['status'], 'pending')

        # same doctor, same slot
        response = client.post(reverse('appointments'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = client.post(reverse('appointment_cancel', args=[appt_id]), {'reason': 'Busy'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'cancelled')

        response = client.get(reverse('appointment_detail', args=[appt_id]))
        self.assertEqual([h['to'] for h in response.data['data']['history']], ['pending', 'cancelled'])

        # cancelled is final
        response = client.post(reverse('appointment_cancel', args=[appt_id]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'invalid_transition')

    def test_booking_rejects_past_time_and_foreign_pet(self):
        client = self.authenticate(self.customer)
        payload = {
            'pet_id': self.pet.id,
            'branch_id': self.branch.id,
            'appointment_time': (timezone.now() - dt.timedelta(hours=1)).isoformat(),
            'service_type': 'medical-exam',
        }
        response = client.post(reverse('appointments'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        payload.update(pet_id=self.other_pet.id, appointment_time=self.slot.isoformat())
        response = client.post(reverse('appointments'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_booking_rejects_vet_from_other_branch(self):
        client = self.authenticate(self.customer)
        response = client.post(reverse('appointments'), {
            'pet_id': self.pet.id,
            'branch_id': self.branch.id,
            'doctor_id': self.vet2.id,
            'appointment_time': self.slot.isoformat(),
            'service_type': 'single-vaccine',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_appointment_listing_is_scoped_by_role(self):
        mine = self._appointment()
        self._appointment(owner=self.other_customer, pet=self.other_pet, branch=self.branch2, doctor=self.vet2)

        response = self.authenticate(self.customer).get(reverse('appointments'))
        self.assertEqual([a['id'] for a in response.data['data']], [mine.id])

        response = self.authenticate(self.vet).get(reverse('appointments'))
        self.assertEqual([a['id'] for a in response.data['data']], [mine.id])

        response = self.authenticate(self.receptionist).get(reverse('appointments'))
        self.assertEqual([a['id'] for a in response.data['data']], [mine.id])

        response = self.authenticate(self.manager).get(reverse('appointments'))
        self.assertEqual(len(response.data['data']), 2)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def test_order_buy_deducts_stock_and_bills(self):
        client = self.authenticate(self.customer)
        response = client.post(reverse('order_buy'), {
            'branch_id': self.branch.id,
            'payment_method': 'cash',
            'items': [{'product_id': self.food.id, 'quantity': 2}, {'product_id': self.toy.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['total_amount'], 960_000)
        self.assertEqual(data['final_amount'], 960_000)
        self.assertEqual(ProductInventory.objects.get(branch=self.branch, product=self.food).quantity, 8)
        self.assertEqual(SellProduct.objects.filter(service_id=data['service_id']).count(), 2)

        response = client.get(reverse('user_orders'))
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(len(response.data['data'][0]['items']), 2)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.yearly_spending, 960_000)

    def test_order_with_insufficient_stock_rolls_back(self):
        client = self.authenticate(self.customer)
        response = client.post(reverse('order_buy'), {
            'branch_id': self.branch.id,
            'payment_method': 'bank_transfer',
            'items': [{'product_id': self.food.id, 'quantity': 1}, {'product_id': self.toy.id, 'quantity': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'insufficient_stock')
        self.assertEqual(ProductInventory.objects.get(branch=self.branch, product=self.food).quantity, 10)
        self.assertFalse(Invoice.objects.exists())

    def test_order_applies_purchase_promotion(self):
        today = timezone.localdate()
        Promotion.objects.create(
            description='Shop week', target_audience='All', applicable_service_types=['purchase'],
            discount_rate=10, start_date=today - dt.timedelta(days=1), end_date=today + dt.timedelta(days=1),
        )
        client = self.authenticate(self.customer)
        response = client.post(reverse('order_buy'), {
            'branch_id': self.branch.id,
            'payment_method': 'cash',
            'items': [{'product_id': self.food.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['total_discount'], 45_000)
        self.assertEqual(response.data['data']['final_amount'], 405_000)

    def test_customer_rates_invoice(self):
        client = self.authenticate(self.customer)
        response = client.post(reverse('order_buy'), {
            'branch_id': self.branch.id, 'payment_method': 'cash',
            'items': [{'product_id': self.toy.id, 'quantity': 1}],
        }, format='json')
        invoice_id = response.data['data']['invoice_id']
        response = client.post(reverse('user_invoice_rating', args=[invoice_id]),
                               {'saleAttitudeRating': 5, 'overallSatisfactionRating': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Invoice.objects.get(id=invoice_id).overall_satisfaction_rating, 4)

        response = client.post(reverse('user_invoice_rating', args=[invoice_id]),
                               {'overallSatisfactionRating': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    # ------------------------------------------------------------------
    # Veterinarian
    # ------------------------------------------------------------------
    def test_vet_records_exam_for_appointment(self):
        appt = self._appointment()
        client = self.authenticate(self.vet)
        response = client.post(reverse('doctor_exam_records'), {
            'pet_id': self.pet.id,
            'appointment_id': appt.id,
            'diagnosis': 'Kennel cough',
            'weight': 11.5,
            'price': 200_000,
            'prescriptions': [{'medicine_id': self.medicine.id, 'quantity': 10, 'dosage': '1 tablet'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['final_amount'], 350_000)
        appt.refresh_from_db()
        self.assertEqual(appt.status, Appointment.STATUS_COMPLETED)
        transitions = AppointmentTransition.objects.filter(appointment=appt).order_by('id')
        self.assertEqual(list(transitions.values_list('to_status', flat=True)), ['confirmed', 'completed'])
        self.pet.refresh_from_db()
        self.assertEqual(self.pet.weight, 11.5)

        response = client.get(reverse('doctor_medical_records', args=[self.pet.id]))
        self.assertEqual(response.data['data'][0]['prescription'][0]['drugName'], 'Amoxicillin')

    def test_vet_single_injection_uses_branch_stock(self):
        client = self.authenticate(self.vet)
        payload = {'pet_id': self.pet.id, 'vaccine_id': self.vaccine.id}
        response = client.post(reverse('doctor_single_injection'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['final_amount'], 250_000)
        self.assertEqual(VaccineInventory.objects.get(branch=self.branch, vaccine=self.vaccine).quantity, 0)

        response = client.post(reverse('doctor_single_injection'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Insufficient vaccine stock.')

        response = client.get(reverse('doctor_pet_history', args=[self.pet.id]))
        self.assertEqual([h['type'] for h in response.data['data']], ['single_injection'])

    def test_vet_package_injection_schedules_next_dose(self):
        client = self.authenticate(self.vet)
        response = client.post(reverse('doctor_package_injection'),
                               {'pet_id': self.pet.id, 'package_id': self.package.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['injection_number'], 1)
        self.assertIsNotNone(response.data['next_injection_date'])

        response = client.post(reverse('doctor_package_injection'),
                               {'pet_id': self.pet.id, 'package_id': self.package.id, 'cycle_stage': 3},
                               format='json')
        self.assertIsNone(response.data['next_injection_date'])

    def test_package_injection_next_dose_is_one_calendar_month_later(self):
        client = self.authenticate(self.vet)
        response = client.post(reverse('doctor_package_injection'),
                               {'pet_id': self.pet.id, 'package_id': self.package.id, 'cycle_stage': 2},
                               format='json')
        expected = timezone.localdate() + relativedelta(months=1)
        self.assertEqual(response.data['next_injection_date'], expected.isoformat())
        self.assertEqual(response.data['injection_number'], 2)

    def test_exam_rejects_appointment_of_another_pet(self):
        appt = self._appointment(owner=self.other_customer, pet=self.other_pet)
        client = self.authenticate(self.vet)
        response = client.post(reverse('doctor_exam_records'), {
            'pet_id': self.pet.id,
            'appointment_id': appt.id,
            'diagnosis': 'Checkup',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Appointment belongs to a different pet.')
        appt.refresh_from_db()
        self.assertEqual(appt.status, Appointment.STATUS_PENDING)
        self.assertFalse(Invoice.objects.exists())

    def test_vet_confirms_only_own_appointments(self):
        mine = self._appointment()
        theirs = self._appointment(branch=self.branch2, doctor=self.vet2)
        client = self.authenticate(self.vet)
        response = client.put(reverse('doctor_confirm_appointment', args=[mine.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'confirmed')
        response = client.put(reverse('doctor_confirm_appointment', args=[theirs.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = client.get(reverse('doctor_pending_count'))
        self.assertEqual(response.data['count'], 0)

    def test_vet_pets_by_type_validates_type(self):
        self._appointment(service_type='single-vaccine')
        client = self.authenticate(self.vet)
        response = client.get(reverse('doctor_pets_by_type'), {'type': 'single-vaccine'})
        self.assertEqual([p['name'] for p in response.data['data']], ['Milo'])
        response = client.get(reverse('doctor_pets_by_type'), {'type': 'purchase'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    # ------------------------------------------------------------------
    # Receptionist
    # ------------------------------------------------------------------
    def test_receptionist_checkin_and_booking(self):
        appt = self._appointment()
        client = self.authenticate(self.receptionist)
        response = client.post(reverse('receptionist_checkin', args=[appt.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'confirmed')

        response = client.post(reverse('receptionist_book'), {
            'customer_id': self.customer.id,
            'pet_id': self.pet.id,
            'doctor_id': self.vet.id,
            'appointment_time': (self.slot + dt.timedelta(hours=1)).isoformat(),
            'service_type': 'vaccine-package',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['branchId'], self.branch.id)

        response = client.post(reverse('receptionist_book'), {
            'pet_id': self.pet.id,
            'appointment_time': (self.slot + dt.timedelta(hours=2)).isoformat(),
            'service_type': 'medical-exam',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receptionist_cannot_checkin_other_branch(self):
        appt = self._appointment(branch=self.branch2, doctor=self.vet2)
        client = self.authenticate(self.receptionist)
        response = client.post(reverse('receptionist_checkin', args=[appt.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_receptionist_customer_search(self):
        client = self.authenticate(self.receptionist)
        response = client.get(reverse('receptionist_customer_search'), {'q': '0901'})
        self.assertEqual([c['id'] for c in response.data['data']], [self.customer.id])
        response = client.get(reverse('receptionist_customer_search'), {'q': 'a'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = client.get(reverse('receptionist_doctors'))
        self.assertEqual([d['id'] for d in response.data['data']], [self.vet.id])

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------
    def test_sales_updates_and_adjusts_stock(self):
        client = self.authenticate(self.sales)
        response = client.put(reverse('sales_update_stock'), {'product_id': self.toy.id, 'quantity': 25},
                              format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stock'], 25)
        self.assertEqual(response.data['status'], 'normal')

        response = client.put(reverse('sales_adjust_stock'), {'product_id': self.toy.id, 'adjustment': -23},
                              format='json')
        self.assertEqual(response.data['stock'], 2)
        self.assertEqual(response.data['status'], 'critical')

        response = client.put(reverse('sales_adjust_stock'), {'product_id': self.toy.id, 'adjustment': 0},
                              format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = client.get(reverse('sales_stock_alerts'))
        self.assertEqual([a['itemId'] for a in response.data['data'] if a['type'] == 'product'], [self.toy.id])

    def test_sales_today_stats(self):
        self.authenticate(self.customer).post(reverse('order_buy'), {
            'branch_id': self.branch.id, 'payment_method': 'cash',
            'items': [{'product_id': self.toy.id, 'quantity': 2}],
        }, format='json')
        client = self.authenticate(self.sales)
        response = client.get(reverse('sales_stats'))
        self.assertEqual(response.data['data'], {'ordersToday': 1, 'revenueToday': 120_000})
        response = client.get(reverse('sales_today'))
        self.assertEqual(len(response.data['data']), 1)

    # ------------------------------------------------------------------
    # Manager
    # ------------------------------------------------------------------
    def test_manager_revenue_statistics(self):
        self.authenticate(self.customer).post(reverse('order_buy'), {
            'branch_id': self.branch.id, 'payment_method': 'cash',
            'items': [{'product_id': self.food.id, 'quantity': 1}],
        }, format='json')
        client = self.authenticate(self.manager)
        response = client.get(reverse('manager_revenue', args=['branch']))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['metadata']['total'], 450_000)
        self.assertEqual(response.data['data'][0]['total_invoices'], 1)

        response = client.get(reverse('manager_revenue', args=['weekly']))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = client.get(reverse('manager_branch_products', args=[9999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_manager_appointment_statistics_by_branch(self):
        self._appointment()
        self._appointment(status=Appointment.STATUS_CANCELLED)
        client = self.authenticate(self.manager)
        response = client.get(reverse('manager_branch_appointments', args=[self.branch.id]))
        row = response.data['data'][0]
        self.assertEqual(row['total_appointments'], 2)
        self.assertEqual(row['cancelled'], 1)
        self.assertEqual(row['pending'], 1)

    def test_non_manager_is_denied_statistics(self):
        for user in (self.customer, self.vet, self.sales):
            response = self.authenticate(user).get(reverse('manager_revenue', args=['branch']))
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_promotion_lifecycle(self):
        client = self.authenticate(self.manager)
        today = timezone.localdate()
        payload = {
            'description': 'Vaccination month',
            'targetAudience': 'All',
            'applicableServiceTypes': ['single-vaccine'],
            'discountRate': 10,
            'startDate': today.isoformat(),
            'endDate': (today + dt.timedelta(days=30)).isoformat(),
            'branchId': self.branch.id,
        }
        response = client.post(reverse('promotions'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        promo_id = response.data['data']['id']

        response = client.post(reverse('promotions'), {**payload, 'discountRate': 40}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        customer = self.authenticate(self.customer)
        response = customer.get(reverse('promotion_discount'),
                                {'service_type': 'single-vaccine', 'branch_id': self.branch.id})
        self.assertEqual(response.data['discountRate'], 10)
        response = customer.post(reverse('promotions'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = client.delete(reverse('promotion_detail', args=[promo_id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_promotion_quote(self):
        client = self.authenticate(self.customer)
        response = client.post(reverse('promotion_quote'), {
            'services': [{'serviceType': 'medical-exam', 'basePrice': 200_000}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['finalAmount'], 200_000)

    def test_branch_management(self):
        client = self.authenticate(self.manager)
        response = client.post(reverse('branches'), {'name': 'Central'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = client.post(reverse('branches'), {'name': 'Lakeside', 'openingAt': '08:00',
                                                     'closingAt': '20:00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.authenticate(self.vet).post(reverse('branches'), {'name': 'Hilltop'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_transfer_moves_current_branch(self):
        client = self.authenticate(self.manager)
        response = client.post(reverse('staff_transfer', args=[self.vet.id]),
                               {'toBranchId': self.branch2.id, 'reason': 'Coverage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['fromBranchId'], self.branch.id)

        response = client.get(reverse('staff'), {'branchId': self.branch2.id, 'role': 'veterinarian'})
        self.assertEqual(sorted(s['id'] for s in response.data['data']), sorted([self.vet.id, self.vet2.id]))

        response = client.post(reverse('staff_transfer', args=[self.vet.id]),
                               {'toBranchId': self.branch2.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_manager_creates_employee(self):
        client = self.authenticate(self.manager)
        response = client.post(reverse('staff'), {
            'username': 'vet3', 'password': 'Str0ngPass!', 'fullName': 'Dr Ha', 'role': 'veterinarian',
            'branchId': self.branch2.id, 'specialization': 'Surgery',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['branchId'], self.branch2.id)

        response = client.post(reverse('staff'), {
            'username': 'vet3', 'password': 'Str0ngPass!', 'fullName': 'Dr Ha', 'role': 'veterinarian',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    # ------------------------------------------------------------------
    # Public storefront
    # ------------------------------------------------------------------
    def test_public_product_listing_and_search(self):
        client = APIClient()
        response = client.get(reverse('products'), {'category': 'toy'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['data']], ['Chew Bone'])
        self.assertEqual(response.data['meta']['totalCount'], 1)

        response = client.get(reverse('products'), {'sortBy': 'price', 'sortOrder': 'desc'})
        self.assertEqual(response.data['data'][0]['id'], self.food.id)

        response = client.get(reverse('search'), {'q': 'amox'})
        self.assertEqual([m['name'] for m in response.data['medicines']], ['Amoxicillin'])

        response = client.post(reverse('products'), {'name': 'Ball', 'category': 'toy', 'price': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_public_and_role_dashboard(self):
        response = APIClient().get(reverse('dashboard_public_stats'))
        self.assertEqual(response.data['data']['totalPets'], 2)
        self.assertEqual(response.data['data']['emergencySupport'], '24/7')

        response = self.authenticate(self.customer).get(reverse('dashboard_stats'))
        self.assertEqual(response.data['role'], 'customer')
        self.assertEqual(response.data['data']['totalPets'], 1)

        response = self.authenticate(self.manager).get(reverse('dashboard_stats'))
        self.assertEqual(len(response.data['data']['chartData']), 7)

    def test_public_satisfaction_rate_rounds_half_up(self):
        for rating in (5, 5, 5, 5, 5, 4, 4, 4):
            Invoice.objects.create(branch=self.branch, customer=self.customer, overall_satisfaction_rating=rating)
        response = APIClient().get(reverse('dashboard_public_stats'))
        self.assertEqual(response.data['data']['satisfactionRate'], 93)

    def test_non_numeric_id_filters_are_rejected(self):
        client = self.authenticate(self.manager)
        requests = [
            (reverse('catalog_doctors'), {'branchId': 'abc'}),
            (reverse('promotions'), {'branchId': 'abc'}),
            (reverse('promotion_discount'), {'service_type': 'purchase', 'branch_id': 'abc'}),
            (reverse('inventory_alerts'), {'branchId': 'abc'}),
            (reverse('staff'), {'branchId': 'abc'}),
            (reverse('staff_transfers'), {'staffId': 'abc'}),
        ]
        for url, params in requests:
            response = client.get(url, params)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, url)
            self.assertFalse(response.data['ok'])

        response = client.get(reverse('catalog_doctors'), {'branch_id': self.branch.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([d['id'] for d in response.data['data']], [self.vet.id])
