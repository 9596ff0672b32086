# Read-only seller reports built from orders
from decimal import Decimal

from sqlalchemy import func

from raabtaa.models import Order, OrderItem, OrderStatus, Product
from raabtaa.utils.parsing import CENTS


class ProcurementService:

    def __init__(self, session):
        self.session = session

    def aggregate_procurement(self, seller_id):
        """Quantities still owed across the seller's pending orders, per product."""
        total_needed = func.sum(OrderItem.quantity).label('total_needed')
        rows = (self.session.query(OrderItem.product_id, Product.name, Product.image_url, total_needed)
                .join(Order, Order.id == OrderItem.order_id)
                .join(Product, Product.id == OrderItem.product_id)
                .filter(Order.seller_id == seller_id, Order.status == OrderStatus.PENDING.value)
                .group_by(OrderItem.product_id, Product.name, Product.image_url)
                .order_by(total_needed.desc(), OrderItem.product_id.asc())
                .all())
        return [{
            'product_id': row.product_id,
            'name': row.name,
            'image_url': row.image_url,
            'total_needed': int(row.total_needed)
        } for row in rows]

    def sales_summary(self, seller_id):
        counts = dict(self.session.query(Order.status, func.count(Order.id))
                      .filter(Order.seller_id == seller_id)
                      .group_by(Order.status)
                      .all())
        revenue = (self.session.query(func.sum(Order.total_amount))
                   .filter(Order.seller_id == seller_id, Order.status == OrderStatus.COMPLETED.value)
                   .scalar())
        return {
            'seller_id': seller_id,
            'orders_by_status': {status.value: counts.get(status.value, 0) for status in OrderStatus},
            'total_orders': sum(counts.values()),
            'revenue': Decimal(str(revenue or 0)).quantize(CENTS)
        }
