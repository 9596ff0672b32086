import itertools
from datetime import datetime
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from raabtaa import create_app, db as _db
from raabtaa.config import TestConfig
from raabtaa.models import User, AccountType, Product, Service

FIXED_NOW = datetime(2026, 2, 15, 9, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def session(app):
    return _db.session


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def make_user(session):
    counter = itertools.count(1)

    def _make(account_type=AccountType.INDIVIDUAL, username=None):
        n = next(counter)
        user = User(
            username=username or f'user{n}',
            email=f'user{n}@example.com',
            password='not-a-real-hash',
            account_type=account_type
        )
        session.add(user)
        session.commit()
        return user
    return _make


@pytest.fixture
def seller(make_user):
    return make_user(AccountType.BUSINESS, 'seller')


@pytest.fixture
def buyer(make_user):
    return make_user(AccountType.INDIVIDUAL, 'buyer')


@pytest.fixture
def make_product(session):
    def _make(owner, price='100.00', stock=10, name='Widget'):
        product = Product(owner_id=owner.id, name=name, price=Decimal(price), stock_quantity=stock)
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture
def make_service(session):
    def _make(owner, auto_approve=False, duration_mins=30, name='Haircut'):
        service = Service(owner_id=owner.id, name=name, price=Decimal('500.00'),
                          duration_mins=duration_mins, auto_approve=auto_approve)
        session.add(service)
        session.commit()
        return service
    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id),
                                    additional_claims={'account_type': user.account_type.value})
        return {'Authorization': f'Bearer {token}'}
    return _headers
