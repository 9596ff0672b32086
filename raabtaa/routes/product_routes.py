from flask_restx import Namespace, Resource, fields
from flask import request
from flask_jwt_extended import jwt_required

from raabtaa.models import AccountType
from raabtaa.services import catalog_service, inventory_service
from raabtaa.services.catalog_service import format_product, format_service
from raabtaa.utils.util import account_type_required, current_user_id

product_ns = Namespace('products', description='Operations related to products', path='/api/products')
service_ns = Namespace('services', description='Operations related to bookable services', path='/api/services')

# Swagger models
product_model = product_ns.model('Product', {
    'name': fields.String(required=True),
    'price': fields.String(required=True, description='Unit price as a decimal string'),
    'description': fields.String(),
    'image_url': fields.String(),
    'stock_quantity': fields.Integer(),
    'delivery_fee': fields.String(),
    'is_returnable': fields.Boolean(),
    'variants': fields.Raw(),
    'wholesale_tiers': fields.Raw()
})

stock_model = product_ns.model('Stock', {
    'stock': fields.Integer(required=True, description='New stock count')
})

service_model = service_ns.model('Service', {
    'name': fields.String(required=True),
    'price': fields.String(required=True),
    'description': fields.String(),
    'duration_mins': fields.Integer(),
    'service_type': fields.String(),
    'service_location': fields.String(),
    'auto_approve': fields.Boolean(description='Confirm bookings without review'),
    'cancellation_policy': fields.String()
})


@product_ns.route('')
class ProductList(Resource):
    @account_type_required(AccountType.BUSINESS)
    @product_ns.expect(product_model)
    @product_ns.doc('create_product', security='BearerAuth')
    def post(self):
        """Create a product owned by the caller"""
        product = catalog_service().create_product(current_user_id(), request.get_json(silent=True) or {})
        return format_product(product), 201


@product_ns.route('/<int:owner_id>')
class OwnerProducts(Resource):
    @jwt_required()
    def get(self, owner_id):
        """List a seller's products"""
        return [format_product(p) for p in catalog_service().list_products(owner_id)], 200


@product_ns.route('/<int:product_id>/stock')
class ProductStock(Resource):
    @jwt_required()
    @product_ns.expect(stock_model)
    def post(self, product_id):
        """Restock one of the caller's products"""
        data = request.get_json(silent=True) or {}
        product = inventory_service().set_stock(product_id, current_user_id(), data.get('stock'))
        return {'message': 'Stock updated', 'product': format_product(product)}, 200


@service_ns.route('')
class ServiceList(Resource):
    @jwt_required()
    @service_ns.expect(service_model)
    def post(self):
        """Create a bookable service owned by the caller"""
        service = catalog_service().create_service(current_user_id(), request.get_json(silent=True) or {})
        return format_service(service), 201


@service_ns.route('/<int:owner_id>')
class OwnerServices(Resource):
    @jwt_required()
    def get(self, owner_id):
        """List a provider's services"""
        return [format_service(s) for s in catalog_service().list_services(owner_id)], 200


@service_ns.route('/<int:service_id>')
class ServiceResource(Resource):
    @jwt_required()
    @service_ns.expect(service_model)
    @service_ns.doc('update_service', security='BearerAuth')
    def put(self, service_id):
        """Edit one of the caller's services"""
        service = catalog_service().update_service(service_id, current_user_id(), request.get_json(silent=True) or {})
        return {'message': 'Service updated', 'service': format_service(service)}, 200

    @jwt_required()
    @service_ns.doc('delete_service', security='BearerAuth')
    def delete(self, service_id):
        """Delete one of the caller's services"""
        catalog_service().delete_service(service_id, current_user_id())
        return {'message': 'Service deleted'}, 200
