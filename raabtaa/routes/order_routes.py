import logging

from flask_restx import Namespace, Resource, fields
from flask import request
from flask_jwt_extended import jwt_required

from raabtaa.errors import PermissionDenied
from raabtaa.models import AccountType
from raabtaa.services import order_service, procurement_service
from raabtaa.services.order_service import format_order
from raabtaa.services.status_gate import ORDER_TRANSITIONS
from raabtaa.utils.util import account_type_required, current_user_id, ensure_self

order_ns = Namespace('orders', description='Order operations', path='/api/orders')
business_ns = Namespace('business', description='Seller reports', path='/api')

logger = logging.getLogger(__name__)

# Swagger models
order_item = order_ns.model('OrderItem', {
    'product_id': fields.Integer(required=True, description='Product ID'),
    'quantity': fields.Integer(required=True, description='Quantity'),
    'price': fields.String(description='Unit price at cart time')
})

order_model = order_ns.model('PlaceOrder', {
    'seller_id': fields.Integer(required=True, description='Seller of every item'),
    'buyer_id': fields.Integer(description='Buyer, or null for an offline sale'),
    'items': fields.List(fields.Nested(order_item), required=True),
    'payment_method': fields.String(description='cod or online')
})

checkout_model = order_ns.model('Checkout', {
    'items': fields.List(fields.Nested(order_item), required=True),
    'payment_method': fields.String(description='cod or online')
})

status_model = order_ns.model('OrderStatus', {
    'status': fields.String(required=True, description='New status')
})


def check_authorization(order, user_id):
    return user_id in (order.seller_id, order.buyer_id)


@order_ns.route('/status-transitions')
class StatusTransitions(Resource):
    def get(self):
        """Allowed order status transitions"""
        return ORDER_TRANSITIONS, 200


@order_ns.route('')
class OrderList(Resource):
    @jwt_required()
    @order_ns.expect(order_model)
    @order_ns.doc('place_order', security='BearerAuth')
    def post(self):
        """Place an order with a single seller"""
        caller = current_user_id()
        data = request.get_json(silent=True) or {}
        seller_id = data.get('seller_id')
        buyer_id = data['buyer_id'] if 'buyer_id' in data else caller
        if buyer_id is None and seller_id != caller:
            raise PermissionDenied('Only the seller can record an order without a buyer')
        if buyer_id is not None and buyer_id != caller:
            raise PermissionDenied('Orders can only be placed for yourself')

        result = order_service().place_order(seller_id, data.get('items'),
                                             data.get('payment_method', 'cod'), buyer_id)
        return {
            'message': 'Order placed successfully',
            'order_id': result['order_id'],
            'total': str(result['total'])
        }, 201


@order_ns.route('/checkout')
class Checkout(Resource):
    @jwt_required()
    @order_ns.expect(checkout_model)
    @order_ns.doc('checkout', security='BearerAuth')
    def post(self):
        """Place one order per seller for a mixed cart"""
        data = request.get_json(silent=True) or {}
        result = order_service().checkout(current_user_id(), data.get('items'), data.get('payment_method', 'cod'))
        orders = [{'seller_id': o['seller_id'], 'order_id': o['order_id'], 'total': str(o['total'])}
                  for o in result['orders']]
        if not orders:
            return {'message': 'No orders could be placed', 'orders': [], 'errors': result['errors']}, 400
        # 207 when only some sellers' orders went through
        code = 207 if result['errors'] else 201
        return {'message': 'Checkout completed', 'orders': orders, 'errors': result['errors']}, code


@order_ns.route('/<int:order_id>')
class OrderResource(Resource):
    @jwt_required()
    def get(self, order_id):
        """Get one order"""
        order = order_service().get_order(order_id)
        if not check_authorization(order, current_user_id()):
            raise PermissionDenied('Access denied')
        return format_order(order), 200


@order_ns.route('/<int:order_id>/status')
class OrderStatusResource(Resource):
    @jwt_required()
    @order_ns.expect(status_model)
    @order_ns.doc('update_order_status', security='BearerAuth')
    def put(self, order_id):
        """Move an order to a new status (seller only)"""
        caller = current_user_id()
        service = order_service()
        if service.get_order(order_id).seller_id != caller:
            raise PermissionDenied('Only the seller can update this order')
        data = request.get_json(silent=True) or {}
        order, changed = service.update_status(order_id, data.get('status'))
        logger.info(f"Order {order_id} status request by user {caller}: {order.status} (changed={changed})")
        return {'message': 'Order status updated' if changed else 'Order status unchanged',
                'order': format_order(order)}, 200


@order_ns.route('/business/<int:seller_id>')
class SellerOrders(Resource):
    @jwt_required()
    def get(self, seller_id):
        """Orders received by a seller, newest first"""
        ensure_self(seller_id)
        return [format_order(o) for o in order_service().list_for_seller(seller_id)], 200


@order_ns.route('/customer/<int:buyer_id>')
class CustomerOrders(Resource):
    @jwt_required()
    def get(self, buyer_id):
        """Orders placed by a customer, newest first"""
        ensure_self(buyer_id)
        return [format_order(o) for o in order_service().list_for_buyer(buyer_id)], 200


@business_ns.route('/business/procurement/<int:seller_id>')
class Procurement(Resource):
    @account_type_required(AccountType.BUSINESS)
    def get(self, seller_id):
        """Quantities needed across pending orders, per product"""
        ensure_self(seller_id)
        return {'procurement': procurement_service().aggregate_procurement(seller_id)}, 200


@business_ns.route('/reports/sales/<int:seller_id>')
class SalesReport(Resource):
    @jwt_required()
    def get(self, seller_id):
        """Order counts per status and completed revenue"""
        ensure_self(seller_id)
        summary = procurement_service().sales_summary(seller_id)
        summary['revenue'] = str(summary['revenue'])
        return summary, 200
