import enum

from raabtaa import db
from raabtaa.utils.clock import utcnow


class AccountType(enum.Enum):
    INDIVIDUAL = 'Individual'
    BUSINESS = 'Business'


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    account_type = db.Column(db.Enum(AccountType), nullable=False, default=AccountType.INDIVIDUAL)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    products = db.relationship('Product', backref='owner', lazy=True)
    services = db.relationship('Service', backref='owner', lazy=True)

    def __repr__(self):
        return f'<User {self.username} ({self.account_type})>'
