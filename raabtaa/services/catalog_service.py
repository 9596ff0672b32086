# Catalog service: products and bookable services owned by sellers/providers
import logging

from sqlalchemy.exc import SQLAlchemyError

from raabtaa.errors import ValidationError, NotFoundError, PermissionDenied, PersistenceError
from raabtaa.models import Appointment, Product, Service, User
from raabtaa.utils.parsing import parse_money, parse_positive_int

logger = logging.getLogger(__name__)


def format_product(product):
    return {
        'id': product.id,
        'owner_id': product.owner_id,
        'name': product.name,
        'description': product.description,
        'image_url': product.image_url,
        'price': str(product.price),
        'stock_quantity': product.stock_quantity,
        'delivery_fee': str(product.delivery_fee),
        'is_returnable': product.is_returnable,
        'variants': product.variants,
        'wholesale_tiers': product.wholesale_tiers
    }


def format_service(service):
    return {
        'id': service.id,
        'owner_id': service.owner_id,
        'name': service.name,
        'description': service.description,
        'price': str(service.price),
        'duration_mins': service.duration_mins,
        'service_type': service.service_type,
        'service_location': service.service_location,
        'auto_approve': service.auto_approve,
        'cancellation_policy': service.cancellation_policy
    }


class CatalogService:

    def __init__(self, session):
        self.session = session

    def _require_owner(self, owner_id):
        if not owner_id or not self.session.get(User, owner_id):
            raise NotFoundError(f'User with ID {owner_id} not found')

    def create_product(self, owner_id, data):
        if not data or not data.get('name'):
            raise ValidationError('Missing required fields: name, price')
        self._require_owner(owner_id)
        stock = data.get('stock_quantity', 0)
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            raise ValidationError('stock_quantity must be a non-negative integer')
        product = Product(
            owner_id=owner_id,
            name=data['name'],
            description=data.get('description'),
            image_url=data.get('image_url'),
            price=parse_money(data.get('price')),
            stock_quantity=stock,
            delivery_fee=parse_money(data.get('delivery_fee', 0), 'delivery_fee'),
            is_returnable=bool(data.get('is_returnable', False)),
            variants=data.get('variants'),
            wholesale_tiers=data.get('wholesale_tiers')
        )
        try:
            self.session.add(product)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error creating product for user {owner_id}: {str(e)}")
            raise PersistenceError('Error creating product') from e
        logger.info(f"Created product {product.id} for user {owner_id}")
        return product

    def list_products(self, owner_id):
        return self.session.query(Product).filter_by(owner_id=owner_id).order_by(Product.id).all()

    def create_service(self, owner_id, data):
        if not data or not data.get('name'):
            raise ValidationError('Missing required fields: name, price')
        self._require_owner(owner_id)
        service = Service(
            owner_id=owner_id,
            name=data['name'],
            description=data.get('description'),
            price=parse_money(data.get('price')),
            duration_mins=parse_positive_int(data.get('duration_mins', 60), 'duration_mins'),
            service_type=data.get('service_type'),
            service_location=data.get('service_location'),
            auto_approve=bool(data.get('auto_approve', False)),
            cancellation_policy=data.get('cancellation_policy')
        )
        try:
            self.session.add(service)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error creating service for user {owner_id}: {str(e)}")
            raise PersistenceError('Error creating service') from e
        logger.info(f"Created service {service.id} for user {owner_id}")
        return service

    def list_services(self, owner_id):
        return self.session.query(Service).filter_by(owner_id=owner_id).order_by(Service.id).all()

    def _owned_service(self, service_id, owner_id):
        service = self.session.get(Service, service_id)
        if not service:
            raise NotFoundError(f'Service with ID {service_id} not found')
        if service.owner_id != owner_id:
            raise PermissionDenied('No permission to modify this service')
        return service

    def update_service(self, service_id, owner_id, data):
        """Edit one of the owner's services.

        Appointments already booked keep the status they were created with,
        so toggling ``auto_approve`` only affects later bookings.
        """
        service = self._owned_service(service_id, owner_id)
        data = data or {}
        if 'name' in data:
            if not data['name']:
                raise ValidationError('Service name cannot be empty')
            service.name = data['name']
        if 'price' in data:
            service.price = parse_money(data['price'])
        if 'duration_mins' in data:
            service.duration_mins = parse_positive_int(data['duration_mins'], 'duration_mins')
        if 'auto_approve' in data:
            service.auto_approve = bool(data['auto_approve'])
        for field in ('description', 'service_type', 'service_location', 'cancellation_policy'):
            if field in data:
                setattr(service, field, data[field])
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error updating service {service_id}: {str(e)}")
            raise PersistenceError('Error updating service') from e
        logger.info(f"Updated service {service_id} for user {owner_id}")
        return service

    def delete_service(self, service_id, owner_id):
        """Remove a service; its appointments stay, detached from it."""
        service = self._owned_service(service_id, owner_id)
        try:
            detached = (self.session.query(Appointment)
                        .filter_by(service_id=service_id)
                        .update({'service_id': None}, synchronize_session='fetch'))
            self.session.delete(service)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error deleting service {service_id}: {str(e)}")
            raise PersistenceError('Error deleting service') from e
        logger.info(f"Deleted service {service_id}, detached {detached} appointments")
