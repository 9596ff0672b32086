# Order service module for business logic
import logging
from collections import OrderedDict
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from raabtaa.errors import (RaabtaaError, ValidationError, NotFoundError, InsufficientStockError,
                            PersistenceError, PartialFailure)
from raabtaa.models import Order, OrderItem, OrderStatus, Product, User, NotificationEvent
from raabtaa.services.inventory_service import InventoryService
from raabtaa.services.notification_service import NotificationService
from raabtaa.services.status_gate import ORDER_TRANSITIONS, check_transition
from raabtaa.utils.clock import utcnow
from raabtaa.utils.parsing import CENTS, parse_money, parse_positive_int

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ['cod', 'online']
PRICING_SOURCES = ['client', 'catalog']
CONSISTENCY_MODES = ['transactional', 'best_effort']


def format_order(order):
    return {
        'id': order.id,
        'seller_id': order.seller_id,
        'buyer_id': order.buyer_id,
        'total_amount': str(order.total_amount),
        'status': order.status,
        'payment_method': order.payment_method,
        'created_at': order.created_at.isoformat(),
        'items': [{
            'id': item.id,
            'product_id': item.product_id,
            'name': item.product.name if item.product else None,
            'quantity': item.quantity,
            'price': str(item.price)
        } for item in order.items]
    }


class OrderService:
    """Turns seller carts into orders, and moves orders through their lifecycle."""

    def __init__(self, session, notifier=None, inventory=None, pricing_source='client',
                 consistency='transactional', clock=utcnow):
        if pricing_source not in PRICING_SOURCES:
            raise ValueError(f'Unknown pricing source: {pricing_source}')
        if consistency not in CONSISTENCY_MODES:
            raise ValueError(f'Unknown consistency mode: {consistency}')
        self.session = session
        self.notifier = notifier or NotificationService(session)
        self.inventory = inventory or InventoryService(session)
        self.pricing_source = pricing_source
        self.consistency = consistency
        self.clock = clock

    def _resolve_lines(self, seller_id, items):
        if not isinstance(items, list) or not items:
            raise ValidationError('Order must contain at least one item')
        lines = []
        for index, item in enumerate(items):
            if not isinstance(item, dict) or 'product_id' not in item or 'quantity' not in item:
                raise ValidationError(f'Invalid item format at index {index}')
            quantity = parse_positive_int(item['quantity'], f'quantity at index {index}')
            product_id = parse_positive_int(item['product_id'], f'product_id at index {index}')
            product = self.session.get(Product, product_id)
            if not product:
                raise NotFoundError(f'Product with ID {product_id} not found')
            if product.owner_id != seller_id:
                raise ValidationError(f'Product {product.id} is not sold by seller {seller_id}')
            if self.pricing_source == 'client':
                price = parse_money(item.get('price'), f'price at index {index}')
            else:
                price = Decimal(str(product.price)).quantize(CENTS)
            lines.append({'product': product, 'quantity': quantity, 'price': price})
        return lines

    def _check_stock(self, lines):
        needed = OrderedDict()
        for line in lines:
            needed[line['product']] = needed.get(line['product'], 0) + line['quantity']
        for product, quantity in needed.items():
            if product.stock_quantity < quantity:
                raise InsufficientStockError(
                    f'Insufficient stock for product {product.name} (ID: {product.id}). '
                    f'Available: {product.stock_quantity}')

    def _add_items(self, order, lines):
        for line in lines:
            self.session.add(OrderItem(
                order_id=order.id,
                product_id=line['product'].id,
                quantity=line['quantity'],
                price=line['price']
            ))
        self.session.flush()

    def _decrement_stock(self, lines):
        """Transactional mode: every decrement must succeed or the order is rolled back."""
        for line in lines:
            if not self.inventory.decrement(line['product'].id, line['quantity']):
                raise InsufficientStockError(
                    f"Insufficient stock for product {line['product'].name} (ID: {line['product'].id})")

    def _decrement_stock_best_effort(self, order_id, lines):
        for line in lines:
            product_id = line['product'].id
            try:
                self.inventory.decrement(product_id, line['quantity'])
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(f"Failed to decrement stock of product {product_id} for order {order_id}: {str(e)}")

    def place_order(self, seller_id, items, payment_method='cod', buyer_id=None):
        """Create one pending order for a single seller.

        Returns ``{'order_id': ..., 'total': Decimal}``. Multi-seller carts go
        through :meth:`checkout`, which calls this once per seller.
        """
        if not seller_id:
            raise ValidationError('Missing seller_id')
        seller_id = parse_positive_int(seller_id, 'seller_id')
        if buyer_id is not None:
            buyer_id = parse_positive_int(buyer_id, 'buyer_id')
        payment_method = payment_method.lower() if isinstance(payment_method, str) and payment_method else 'cod'
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Invalid payment method. Allowed: {', '.join(PAYMENT_METHODS)}")
        if not self.session.get(User, seller_id):
            raise NotFoundError(f'Seller with ID {seller_id} not found')
        if buyer_id is not None and not self.session.get(User, buyer_id):
            raise NotFoundError(f'Buyer with ID {buyer_id} not found')

        lines = self._resolve_lines(seller_id, items)
        total = sum((line['price'] * line['quantity'] for line in lines), Decimal('0')).quantize(CENTS)

        if self.consistency == 'transactional':
            self._check_stock(lines)
            order_id = self._write_transactional(seller_id, buyer_id, total, payment_method, lines)
        else:
            order_id = self._write_best_effort(seller_id, buyer_id, total, payment_method, lines)

        logger.info(f"Created order {order_id} for seller {seller_id}, buyer {buyer_id}, total: {total}")
        self._notify_seller(seller_id, order_id, total)
        return {'order_id': order_id, 'total': total}

    def _notify_seller(self, seller_id, order_id, total):
        self.notifier.emit(
            seller_id,
            'New order received',
            f'Order #{order_id} was placed for a total of {total}.',
            'order',
            NotificationEvent.ORDER_CREATED,
            order_id
        )

    def _new_order(self, seller_id, buyer_id, total, payment_method):
        return Order(
            seller_id=seller_id,
            buyer_id=buyer_id,
            total_amount=total,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method,
            created_at=self.clock()
        )

    def _write_transactional(self, seller_id, buyer_id, total, payment_method, lines):
        try:
            order = self._new_order(seller_id, buyer_id, total, payment_method)
            self.session.add(order)
            self.session.flush()
            self._add_items(order, lines)
            self._decrement_stock(lines)
            self.session.commit()
            return order.id
        except InsufficientStockError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to create order for seller {seller_id}: {str(e)}")
            raise PersistenceError('Failed to create order') from e

    def _write_best_effort(self, seller_id, buyer_id, total, payment_method, lines):
        try:
            order = self._new_order(seller_id, buyer_id, total, payment_method)
            self.session.add(order)
            self.session.commit()
            order_id = order.id
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to create order for seller {seller_id}: {str(e)}")
            raise PersistenceError('Failed to create order') from e

        try:
            self._add_items(order, lines)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Order {order_id} committed but its items failed: {str(e)}")
            # The header is committed: stock and the seller's notice still follow it
            self._decrement_stock_best_effort(order_id, lines)
            self._notify_seller(seller_id, order_id, total)
            raise PartialFailure(order_id) from e

        self._decrement_stock_best_effort(order_id, lines)
        return order_id

    def checkout(self, buyer_id, lines, payment_method='cod'):
        """Split a multi-seller cart into one order per seller.

        Sibling orders are independent: one seller's failure is reported in
        ``errors`` and does not undo orders already placed for other sellers.
        """
        if not isinstance(lines, list) or not lines:
            raise ValidationError('Cart is empty')
        by_seller = OrderedDict()
        for index, line in enumerate(lines):
            if not isinstance(line, dict) or 'product_id' not in line:
                raise ValidationError(f'Invalid item format at index {index}')
            product_id = parse_positive_int(line['product_id'], f'product_id at index {index}')
            product = self.session.get(Product, product_id)
            if not product:
                raise NotFoundError(f'Product with ID {product_id} not found')
            by_seller.setdefault(product.owner_id, []).append(line)

        orders = []
        errors = []
        for seller_id, seller_lines in by_seller.items():
            try:
                result = self.place_order(seller_id, seller_lines, payment_method, buyer_id)
                orders.append({'seller_id': seller_id, 'order_id': result['order_id'], 'total': result['total']})
            except RaabtaaError as e:
                logger.warning(f"Checkout for buyer {buyer_id}: order for seller {seller_id} failed: {e.message}")
                errors.append({'seller_id': seller_id, 'error': type(e).__name__, 'message': e.message})
        return {'orders': orders, 'errors': errors}

    def get_order(self, order_id, for_update=False):
        query = self.session.query(Order).filter_by(id=order_id)
        if for_update:
            query = query.with_for_update()
        order = query.first()
        if not order:
            raise NotFoundError(f'Order {order_id} not found')
        return order

    def list_for_seller(self, seller_id):
        return (self.session.query(Order).filter_by(seller_id=seller_id)
                .order_by(Order.created_at.desc(), Order.id.desc()).all())

    def list_for_buyer(self, buyer_id):
        return (self.session.query(Order).filter_by(buyer_id=buyer_id)
                .order_by(Order.created_at.desc(), Order.id.desc()).all())

    def update_status(self, order_id, new_status):
        """Apply a legal status move; returns ``(order, changed)``.

        Completing an order notifies its buyer once; guest orders have no buyer
        and are completed silently.
        """
        order = self.get_order(order_id, for_update=True)
        try:
            changed = check_transition(order.status, new_status, ORDER_TRANSITIONS, 'order')
        except ValidationError:
            self.session.rollback()
            raise
        if not changed:
            self.session.rollback()
            return order, False

        previous = order.status
        try:
            order.status = new_status.strip().lower()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to update order {order_id}: {str(e)}")
            raise PersistenceError('Failed to update order') from e
        logger.info(f"Order {order_id} moved from {previous} to {order.status}")

        if order.status == OrderStatus.COMPLETED.value:
            if order.buyer_id is None:
                logger.info(f"Order {order_id} has no buyer, skipping completion notification")
            else:
                self.notifier.emit(
                    order.buyer_id,
                    'Order completed',
                    f'Your order #{order.id} has been completed.',
                    'order',
                    NotificationEvent.ORDER_COMPLETED,
                    order.id
                )
        return order, True
