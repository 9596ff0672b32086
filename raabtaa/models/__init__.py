from raabtaa.models.user_model import User, AccountType
from raabtaa.models.product_model import Product
from raabtaa.models.service_model import Service
from raabtaa.models.order_model import Order, OrderItem, OrderStatus
from raabtaa.models.appointment_model import Appointment, AppointmentStatus
from raabtaa.models.availability_model import AvailabilityEntry, AvailabilityStatus
from raabtaa.models.notification_model import Notification, NotificationEvent

__all__ = [
    'User', 'AccountType', 'Product', 'Service', 'Order', 'OrderItem', 'OrderStatus',
    'Appointment', 'AppointmentStatus', 'AvailabilityEntry', 'AvailabilityStatus',
    'Notification', 'NotificationEvent',
]
