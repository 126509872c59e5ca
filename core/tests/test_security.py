import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import AuditEvent, User

pytestmark = pytest.mark.django_db


def login(client, account, password):
    r = client.post(reverse('login_view'), {'account': account, 'password': password}, format='json')
    assert r.status_code in (200, 400, 403)
    return r


def test_login_by_username_returns_jwt_and_legacy_token(customer):
    r = login(APIClient(), 'cust', 'P@ssw0rd1')
    assert r.status_code == 200
    assert r.data['ok'] is True
    assert r.data['token'] and r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['role'] == 'customer'
    assert r.data['user']['membershipLevel'] == User.LEVEL_BASIC


def test_login_by_email_is_case_insensitive(customer):
    r = login(APIClient(), 'CUST@example.com', 'P@ssw0rd1')
    assert r.status_code == 200
    assert r.data['user']['id'] == customer.id


def test_login_accepts_legacy_username_field(customer):
    r = APIClient().post(reverse('login_view'), {'username': 'cust', 'password': 'P@ssw0rd1'}, format='json')
    assert r.status_code == 200


def test_bad_credentials_are_rejected_and_audited(customer):
    r = login(APIClient(), 'cust', 'wrong-password')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_unknown_account_is_rejected():
    r = login(APIClient(), 'nobody', 'P@ssw0rd1')
    assert r.status_code == 400


def test_inactive_account_gets_403(customer):
    customer.is_active = False
    customer.save(update_fields=['is_active'])
    r = login(APIClient(), 'cust', 'P@ssw0rd1')
    assert r.status_code == 403


def test_no_role_escalation_through_login(customer):
    r = APIClient().post(reverse('login_view'),
                         {'account': 'cust', 'password': 'P@ssw0rd1', 'role': 'manager'}, format='json')
    assert r.status_code == 200
    customer.refresh_from_db()
    assert customer.role == User.ROLE_CUSTOMER
    assert r.data['role'] == User.ROLE_CUSTOMER


def test_register_creates_basic_customer():
    client = APIClient()
    r = client.post(reverse('register_view'), {
        'username': 'newbie', 'email': 'newbie@example.com', 'password': 'Str0ngPass!',
        'fullName': '<b>Nguyen</b> An', 'role': 'admin',
    }, format='json')
    assert r.status_code == 201
    user = User.objects.get(username='newbie')
    assert user.role == User.ROLE_CUSTOMER
    assert user.membership_level == User.LEVEL_BASIC
    assert user.first_name == 'Nguyen An'
    assert r.data['token']


def test_register_duplicate_username_or_email_conflicts(customer):
    client = APIClient()
    r = client.post(reverse('register_view'), {
        'username': 'cust', 'email': 'fresh@example.com', 'password': 'Str0ngPass!',
    }, format='json')
    assert r.status_code == 409
    assert r.data['error']['code'] == 'conflict'
    r = client.post(reverse('register_view'), {
        'username': 'fresh', 'email': 'Cust@Example.com', 'password': 'Str0ngPass!',
    }, format='json')
    assert r.status_code == 409


def test_register_rejects_short_password():
    r = APIClient().post(reverse('register_view'), {
        'username': 'shorty', 'email': 'shorty@example.com', 'password': 'short',
    }, format='json')
    assert r.status_code == 400


def test_token_authenticates_me_endpoint(customer):
    client = APIClient()
    token = login(client, 'cust', 'P@ssw0rd1').data['token']
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    r = client.get(reverse('me_view'))
    assert r.status_code == 200
    assert r.data['user']['username'] == 'cust'


def test_jwt_bearer_authenticates(customer):
    client = APIClient()
    access = login(client, 'cust', 'P@ssw0rd1').data['jwt_access']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    r = client.get(reverse('user_profile'))
    assert r.status_code == 200


def test_jwt_refresh_and_logout(customer):
    client = APIClient()
    tokens = login(client, 'cust', 'P@ssw0rd1').data
    r = client.post(reverse('jwt_refresh'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert 'jwt_access' in r.data

    client.credentials(HTTP_AUTHORIZATION=f"Token {tokens['token']}")
    r = client.post(reverse('jwt_logout'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1

    client.credentials()
    r = client.post(reverse('jwt_refresh'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_logout_with_garbage_token_is_400(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    r = client.post(reverse('jwt_logout'), {'refresh': 'not-a-token'}, format='json')
    assert r.status_code == 400


def test_anonymous_requests_are_rejected():
    client = APIClient()
    assert client.get(reverse('user_pets')).status_code in (401, 403)
    assert client.get(reverse('appointments')).status_code in (401, 403)
    assert client.get(reverse('manager_ratings')).status_code in (401, 403)


def test_role_boundaries(customer, vet):
    client = APIClient()
    client.force_authenticate(user=customer)
    assert client.get(reverse('doctor_today_appointments')).status_code == 403
    assert client.get(reverse('sales_inventory')).status_code == 403
    assert client.get(reverse('pets')).status_code == 403

    client.force_authenticate(user=vet)
    assert client.get(reverse('doctor_today_appointments')).status_code == 200
    assert client.post(reverse('order_buy'), {}, format='json').status_code == 403
    assert client.get(reverse('staff')).status_code == 403


def test_profile_update_sanitizes_name(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    r = client.put(reverse('user_profile'), {'fullName': '<script>x</script>Lan Anh'}, format='json')
    assert r.status_code == 200
    customer.refresh_from_db()
    assert '<' not in customer.first_name


def test_healthz():
    r = APIClient().get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json()['ok'] is True
