import enum

from raabtaa import db


class AvailabilityStatus(enum.Enum):
    FREE = 'free'
    BUSY = 'busy'


class AvailabilityEntry(db.Model):
    __tablename__ = 'availability'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'date', name='uq_availability_user_date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(10), nullable=False, default=AvailabilityStatus.FREE.value)

    def __repr__(self):
        return f'<AvailabilityEntry user={self.user_id} {self.date} {self.status}>'
