import re

from flask_restx import Namespace, Resource, fields
from flask import request
from flask_jwt_extended import create_access_token, jwt_required
from sqlalchemy.exc import IntegrityError

from raabtaa import db, bcrypt
from raabtaa.errors import ValidationError, NotFoundError, PersistenceError, PermissionDenied
from raabtaa.models import User, AccountType
from raabtaa.utils.util import current_user_id

auth_ns = Namespace('auth', description='Authentication operations', path='/auth')

register_model = auth_ns.model('Register', {
    'username': fields.String(required=True, description='Display name'),
    'email': fields.String(required=True, description='Email address'),
    'password': fields.String(required=True, description='Password'),
    'account_type': fields.String(description='Individual or Business', enum=[t.value for t in AccountType])
})

login_model = auth_ns.model('Login', {
    'email': fields.String(required=True, description='Email address'),
    'password': fields.String(required=True, description='Password')
})

PASSWORD_REGEX = re.compile(r'^(?=.*[A-Za-z])(?=.*\d).{6,}$')
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$')


def format_user(user):
    return {
        'id': user.id,
        'username': user.username,
        'email': user.email,
        'user_type': user.account_type.value
    }


def issue_token(user):
    return create_access_token(identity=str(user.id),
                               additional_claims={'account_type': user.account_type.value})


@auth_ns.route('/register')
class Register(Resource):
    @auth_ns.expect(register_model)
    def post(self):
        """Register a new user (Individual by default)"""
        data = request.get_json(silent=True) or {}
        if not all(data.get(k) for k in ('username', 'email', 'password')):
            raise ValidationError('Missing required fields: username, email, password')
        if not EMAIL_REGEX.match(data['email']):
            raise ValidationError('Invalid email format')
        if not PASSWORD_REGEX.match(data['password']):
            raise ValidationError('Password must be at least 6 characters and contain a letter and a digit')
        try:
            account_type = AccountType(data.get('account_type', AccountType.INDIVIDUAL.value))
        except ValueError:
            raise ValidationError(f"Invalid account type. Allowed: {[t.value for t in AccountType]}")
        if User.query.filter_by(email=data['email']).first():
            raise ValidationError('Email already registered')

        new_user = User(
            username=data['username'],
            email=data['email'],
            password=bcrypt.generate_password_hash(data['password']).decode('utf-8'),
            account_type=account_type
        )
        try:
            db.session.add(new_user)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise PersistenceError('Unable to register user') from e

        return {
            'message': 'User registered successfully',
            'access_token': issue_token(new_user),
            'user': format_user(new_user)
        }, 201


@auth_ns.route('/login')
class Login(Resource):
    @auth_ns.expect(login_model)
    def post(self):
        """Log in and receive an access token"""
        data = request.get_json(silent=True) or {}
        if not all(data.get(k) for k in ('email', 'password')):
            raise ValidationError('Missing required fields: email, password')
        user = User.query.filter_by(email=data['email']).first()
        if not user:
            raise NotFoundError('User not found')
        if not bcrypt.check_password_hash(user.password, data['password']):
            return {'message': 'Invalid password'}, 401
        return {
            'message': 'Logged in successfully',
            'access_token': issue_token(user),
            'user': format_user(user)
        }, 200


@auth_ns.route('/verify')
class VerifyToken(Resource):
    @jwt_required()
    def get(self):
        """Check that the bearer token is still valid"""
        user = db.session.get(User, current_user_id())
        if not user:
            raise PermissionDenied('User no longer exists')
        return {'message': 'Token is valid', 'user': format_user(user)}, 200
