from raabtaa import db
from raabtaa.utils.clock import utcnow


class Service(db.Model):
    __tablename__ = 'services'
    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(300))
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_mins = db.Column(db.Integer, nullable=False, default=60)
    service_type = db.Column(db.String(50))
    service_location = db.Column(db.String(100))
    auto_approve = db.Column(db.Boolean, nullable=False, default=False)
    cancellation_policy = db.Column(db.String(300))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f'<Service {self.name} by User {self.owner_id}>'
