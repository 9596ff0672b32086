from raabtaa import db
from raabtaa.utils.clock import utcnow


class NotificationEvent:
    ORDER_CREATED = 'order_created'
    ORDER_COMPLETED = 'order_completed'
    APPOINTMENT_REQUESTED = 'appointment_requested'


class Notification(db.Model):
    __tablename__ = 'notifications'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'event', 'related_id', name='uq_notifications_user_event_related'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(150), nullable=False)
    message = db.Column(db.String(500), nullable=False)
    # Client-facing category: 'order' or 'appointment'
    type = db.Column(db.String(20), nullable=False)
    event = db.Column(db.String(40), nullable=False)
    related_id = db.Column(db.Integer, nullable=True)
    read_status = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f'<Notification {self.event} for User {self.user_id}>'
