# raabtaa/routes/__init__.py
from .auth_routes import auth_ns
from .product_routes import product_ns, service_ns
from .order_routes import order_ns, business_ns
from .appointment_routes import appointment_ns, availability_ns
from .notification_routes import notification_ns


def register_namespaces(api):
    api.add_namespace(auth_ns)
    api.add_namespace(product_ns)
    api.add_namespace(service_ns)
    api.add_namespace(order_ns)
    api.add_namespace(business_ns)
    api.add_namespace(appointment_ns)
    api.add_namespace(availability_ns)
    api.add_namespace(notification_ns)
