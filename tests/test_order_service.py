from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from raabtaa.errors import (ValidationError, NotFoundError, InsufficientStockError, InvalidTransitionError,
                            PersistenceError, PartialFailure)
from raabtaa.models import AccountType, Notification, NotificationEvent, Order, OrderItem
from raabtaa.services.notification_service import NotificationService
from raabtaa.services.order_service import OrderService


@pytest.fixture
def orders(session, clock):
    return OrderService(session, clock=clock)


def test_total_is_exact_decimal_sum(orders, seller, buyer, make_product):
    cheap = make_product(seller, price='0.10', stock=10)
    pricey = make_product(seller, price='19.99', stock=10)

    result = orders.place_order(seller.id, [
        {'product_id': cheap.id, 'quantity': 3, 'price': '0.10'},
        {'product_id': pricey.id, 'quantity': 2, 'price': 19.99},
    ], 'cod', buyer.id)

    assert result['total'] == Decimal('40.28')
    order = orders.get_order(result['order_id'])
    assert Decimal(order.total_amount) == Decimal('40.28')
    assert sum(Decimal(i.price) * i.quantity for i in order.items) == Decimal('40.28')


def test_place_order_persists_pending_order_with_snapshot_prices(orders, session, seller, buyer, make_product):
    product = make_product(seller, price='100.00', stock=5)

    result = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '90.00'}],
                                'online', buyer.id)

    order = orders.get_order(result['order_id'])
    assert order.status == 'pending'
    assert order.seller_id == seller.id
    assert order.buyer_id == buyer.id
    assert order.payment_method == 'online'
    assert [(i.product_id, i.quantity, Decimal(i.price)) for i in order.items] == [(product.id, 1, Decimal('90.00'))]

    # Later catalog price changes do not touch the snapshot
    product.price = Decimal('150.00')
    session.commit()
    assert Decimal(orders.get_order(result['order_id']).items[0].price) == Decimal('90.00')


def test_place_order_decrements_stock(orders, session, seller, buyer, make_product):
    product = make_product(seller, stock=5)

    orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 2, 'price': '100.00'}], 'cod', buyer.id)

    session.refresh(product)
    assert product.stock_quantity == 3


def test_place_order_notifies_seller_once(orders, session, seller, buyer, make_product):
    product = make_product(seller)

    result = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '100.00'}],
                                'cod', buyer.id)

    notes = session.query(Notification).all()
    assert len(notes) == 1
    assert notes[0].user_id == seller.id
    assert notes[0].event == NotificationEvent.ORDER_CREATED
    assert notes[0].type == 'order'
    assert notes[0].related_id == result['order_id']


@pytest.mark.parametrize('items', [
    [],
    None,
    [{'product_id': 1, 'quantity': 0, 'price': '1.00'}],
    [{'product_id': 1, 'quantity': -2, 'price': '1.00'}],
    [{'product_id': 1, 'price': '1.00'}],
    [{'product_id': 1, 'quantity': 1}],
    [{'product_id': 1, 'quantity': 1, 'price': '-5'}],
])
def test_invalid_items_are_rejected_before_any_write(orders, session, seller, make_product, items):
    make_product(seller)

    with pytest.raises(ValidationError):
        orders.place_order(seller.id, items)

    assert session.query(Order).count() == 0
    assert session.query(Notification).count() == 0


def test_unknown_product_is_not_found(orders, seller):
    with pytest.raises(NotFoundError):
        orders.place_order(seller.id, [{'product_id': 999, 'quantity': 1, 'price': '1.00'}])


def test_non_integer_ids_are_validation_errors(orders, session, seller, buyer, make_product):
    product = make_product(seller)
    line = {'product_id': product.id, 'quantity': 1, 'price': '1.00'}

    with pytest.raises(ValidationError):
        orders.place_order(seller.id, [dict(line, product_id='abc')])
    with pytest.raises(ValidationError):
        orders.place_order('abc', [line])
    with pytest.raises(ValidationError):
        orders.place_order(seller.id, [line], 'cod', 'abc')
    with pytest.raises(ValidationError):
        orders.checkout(buyer.id, [dict(line, product_id='abc')])
    assert session.query(Order).count() == 0


def test_sub_cent_client_price_is_rejected(orders, session, seller, buyer, make_product):
    product = make_product(seller)

    with pytest.raises(ValidationError):
        orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '10.005'}],
                           'cod', buyer.id)
    assert session.query(Order).count() == 0


def test_product_from_another_seller_is_rejected(orders, session, seller, make_user, make_product):
    other = make_user(AccountType.BUSINESS)
    product = make_product(other)

    with pytest.raises(ValidationError):
        orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '100.00'}])
    assert session.query(Order).count() == 0


def test_insufficient_stock_is_rejected_without_writes(orders, session, seller, buyer, make_product):
    product = make_product(seller, stock=1)

    with pytest.raises(InsufficientStockError):
        orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 2, 'price': '100.00'}],
                           'cod', buyer.id)

    session.refresh(product)
    assert product.stock_quantity == 1
    assert session.query(Order).count() == 0
    assert session.query(Notification).count() == 0


def test_catalog_pricing_ignores_client_price(session, clock, seller, buyer, make_product):
    orders = OrderService(session, pricing_source='catalog', clock=clock)
    product = make_product(seller, price='25.50')

    result = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 2, 'price': '0.01'}],
                                'cod', buyer.id)

    assert result['total'] == Decimal('51.00')


def test_unknown_configuration_is_refused(session):
    with pytest.raises(ValueError):
        OrderService(session, pricing_source='whatever')
    with pytest.raises(ValueError):
        OrderService(session, consistency='eventual')


def test_best_effort_order_succeeds_when_stock_runs_short(session, clock, seller, buyer, make_product):
    orders = OrderService(session, consistency='best_effort', clock=clock)
    product = make_product(seller, stock=1)

    result = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 3, 'price': '100.00'}],
                                'cod', buyer.id)

    session.refresh(product)
    assert product.stock_quantity == 1
    assert orders.get_order(result['order_id']).items[0].quantity == 3


def test_best_effort_item_failure_is_a_partial_failure(session, clock, seller, buyer, make_product, monkeypatch):
    orders = OrderService(session, consistency='best_effort', clock=clock)
    product = make_product(seller, stock=5)

    def broken_items(order, lines):
        raise OperationalError('INSERT INTO order_items', {}, Exception('disk full'))
    monkeypatch.setattr(orders, '_add_items', broken_items)

    with pytest.raises(PartialFailure) as excinfo:
        orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 2, 'price': '100.00'}],
                           'cod', buyer.id)

    order = session.get(Order, excinfo.value.order_id)
    assert order is not None
    assert session.query(OrderItem).count() == 0
    assert excinfo.value.to_dict()['order_id'] == order.id

    # Stock and the seller's notice still follow the committed header
    session.refresh(product)
    assert product.stock_quantity == 3
    notes = session.query(Notification).filter_by(event=NotificationEvent.ORDER_CREATED).all()
    assert [(n.user_id, n.related_id) for n in notes] == [(seller.id, order.id)]


def test_transactional_item_failure_rolls_back_everything(orders, session, seller, buyer, make_product,
                                                          monkeypatch):
    product = make_product(seller, stock=4)

    def broken_items(order, lines):
        raise OperationalError('INSERT INTO order_items', {}, Exception('disk full'))
    monkeypatch.setattr(orders, '_add_items', broken_items)

    with pytest.raises(PersistenceError):
        orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '100.00'}],
                           'cod', buyer.id)

    session.refresh(product)
    assert session.query(Order).count() == 0
    assert product.stock_quantity == 4


class BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError('SELECT', {}, Exception('connection lost'))

    def rollback(self):
        pass


def test_notification_failure_does_not_fail_the_order(session, clock, seller, buyer, make_product):
    orders = OrderService(session, notifier=NotificationService(BrokenSession()), clock=clock)
    product = make_product(seller)

    result = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '100.00'}],
                                'cod', buyer.id)

    assert orders.get_order(result['order_id']).status == 'pending'
    assert session.query(Notification).count() == 0


def test_pre_split_orders_produce_one_order_per_seller(orders, session, make_user, buyer, make_product):
    s1 = make_user(AccountType.BUSINESS)
    s2 = make_user(AccountType.BUSINESS)
    p1 = make_product(s1, price='100.00')
    p2 = make_product(s2, price='50.00')

    a = orders.place_order(s1.id, [{'product_id': p1.id, 'quantity': 1, 'price': '100.00'}], 'cod', buyer.id)
    b = orders.place_order(s2.id, [{'product_id': p2.id, 'quantity': 1, 'price': '50.00'}], 'cod', buyer.id)

    assert session.get(Order, a['order_id']).seller_id == s1.id
    assert session.get(Order, b['order_id']).seller_id == s2.id
    assert session.query(Order).count() == 2


def test_checkout_splits_cart_by_seller(orders, session, make_user, buyer, make_product):
    s1 = make_user(AccountType.BUSINESS)
    s2 = make_user(AccountType.BUSINESS)
    p1 = make_product(s1, price='100.00', stock=10)
    p2 = make_product(s2, price='50.00', stock=10)

    result = orders.checkout(buyer.id, [
        {'product_id': p1.id, 'quantity': 2, 'price': '100.00'},
        {'product_id': p2.id, 'quantity': 1, 'price': '50.00'},
    ])

    assert result['errors'] == []
    totals = {o['seller_id']: o['total'] for o in result['orders']}
    assert totals == {s1.id: Decimal('200.00'), s2.id: Decimal('50.00')}
    session.refresh(p1)
    session.refresh(p2)
    assert p1.stock_quantity == 8
    assert p2.stock_quantity == 9


def test_checkout_keeps_sibling_orders_when_one_seller_fails(orders, session, make_user, buyer, make_product):
    s1 = make_user(AccountType.BUSINESS)
    s2 = make_user(AccountType.BUSINESS)
    p1 = make_product(s1, stock=10)
    p2 = make_product(s2, stock=0)

    result = orders.checkout(buyer.id, [
        {'product_id': p1.id, 'quantity': 1, 'price': '100.00'},
        {'product_id': p2.id, 'quantity': 1, 'price': '100.00'},
    ])

    assert [o['seller_id'] for o in result['orders']] == [s1.id]
    assert result['errors'][0]['seller_id'] == s2.id
    assert result['errors'][0]['error'] == 'InsufficientStockError'
    assert session.query(Order).count() == 1


def test_order_walks_through_legal_transitions(orders, seller, buyer, make_product):
    product = make_product(seller)
    order_id = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}],
                                  'cod', buyer.id)['order_id']

    order, changed = orders.update_status(order_id, 'accepted')
    assert changed and order.status == 'accepted'
    order, changed = orders.update_status(order_id, 'COMPLETED')
    assert changed and order.status == 'completed'


@pytest.mark.parametrize('path, illegal', [
    ([], 'completed'),
    (['cancelled'], 'accepted'),
    (['accepted', 'completed'], 'cancelled'),
])
def test_illegal_transitions_are_rejected(orders, seller, buyer, make_product, path, illegal):
    product = make_product(seller)
    order_id = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}],
                                  'cod', buyer.id)['order_id']
    for status in path:
        orders.update_status(order_id, status)

    with pytest.raises(InvalidTransitionError):
        orders.update_status(order_id, illegal)


def test_unknown_status_is_a_validation_error(orders, seller, make_product):
    product = make_product(seller)
    order_id = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}])['order_id']

    with pytest.raises(ValidationError):
        orders.update_status(order_id, 'shipped')


def test_update_status_of_missing_order(orders):
    with pytest.raises(NotFoundError):
        orders.update_status(12345, 'accepted')


def test_completion_notifies_buyer_exactly_once(orders, session, seller, buyer, make_product):
    product = make_product(seller)
    order_id = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}],
                                  'cod', buyer.id)['order_id']
    orders.update_status(order_id, 'accepted')

    orders.update_status(order_id, 'completed')
    _, changed = orders.update_status(order_id, 'completed')

    assert changed is False
    completed = session.query(Notification).filter_by(event=NotificationEvent.ORDER_COMPLETED).all()
    assert [(n.user_id, n.related_id) for n in completed] == [(buyer.id, order_id)]


def test_guest_order_completion_sends_no_notification(orders, session, seller, make_product):
    product = make_product(seller)
    order_id = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}],
                                  'cod', None)['order_id']
    orders.update_status(order_id, 'accepted')
    orders.update_status(order_id, 'completed')

    assert session.query(Notification).filter_by(event=NotificationEvent.ORDER_COMPLETED).count() == 0


def test_order_lists_are_scoped_to_seller_and_buyer(orders, seller, buyer, make_user, make_product):
    other_buyer = make_user()
    product = make_product(seller)
    first = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}],
                               'cod', buyer.id)['order_id']
    second = orders.place_order(seller.id, [{'product_id': product.id, 'quantity': 1, 'price': '1.00'}],
                                'cod', other_buyer.id)['order_id']

    assert [o.id for o in orders.list_for_seller(seller.id)] == [second, first]
    assert [o.id for o in orders.list_for_buyer(buyer.id)] == [first]
