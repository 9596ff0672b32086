import enum

from raabtaa import db
from raabtaa.utils.clock import utcnow


class AppointmentStatus(enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'


class Appointment(db.Model):
    __tablename__ = 'appointments'
    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id'), nullable=True)
    staff_id = db.Column(db.Integer, nullable=True)
    appointment_date = db.Column(db.DateTime, nullable=False, index=True)
    duration_mins = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    service = db.relationship('Service', lazy='joined')

    def __repr__(self):
        return f'<Appointment {self.id} with provider {self.provider_id} at {self.appointment_date}>'
