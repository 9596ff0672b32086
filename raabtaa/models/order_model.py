import enum

from raabtaa import db
from raabtaa.utils.clock import utcnow


class OrderStatus(enum.Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class Order(db.Model):
    __tablename__ = 'orders'
    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    # Null for guest or offline sales
    buyer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING.value)
    payment_method = db.Column(db.String(20), nullable=False, default='cod')
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    items = db.relationship('OrderItem', backref='order', lazy='selectin',
                            cascade='all, delete-orphan', passive_deletes=True)

    def __repr__(self):
        return f'<Order {self.id} from seller {self.seller_id}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'
    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    # Unit price at purchase time, never updated afterwards
    price = db.Column(db.Numeric(10, 2), nullable=False)
    product = db.relationship('Product', lazy='joined')

    def __repr__(self):
        return f'<OrderItem {self.product_id} x{self.quantity} in Order {self.order_id}>'
