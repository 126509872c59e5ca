import datetime as dt

import pytest
from django.core.cache import cache
from django.utils import timezone

from core.models import Branch, Mobilization, Pet, Product, User


@pytest.fixture(autouse=True)
def _clear_cache():
    # stats payloads and throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def branch(db):
    return Branch.objects.create(name='Central', address='1 Main St', opening_at=dt.time(8), closing_at=dt.time(20))


@pytest.fixture
def other_branch(db):
    return Branch.objects.create(name='Riverside', address='9 River Rd')


@pytest.fixture
def customer(db):
    return User.objects.create_user(username='cust', password='P@ssw0rd1', email='cust@example.com',
                                    role=User.ROLE_CUSTOMER, first_name='Lan')


@pytest.fixture
def vet(db, branch):
    u = User.objects.create_user(username='vet', password='P@ssw0rd1', role=User.ROLE_VET, first_name='Dr Minh')
    Mobilization.objects.create(employee=u, branch=branch, start_date=timezone.localdate() - dt.timedelta(days=30))
    return u


@pytest.fixture
def pet(customer):
    return Pet.objects.create(owner=customer, name='Milo', species='Dog', breed='Corgi')


@pytest.fixture
def product(db):
    return Product.objects.create(name='Chew Bone', product_type='toy', price=60_000)
