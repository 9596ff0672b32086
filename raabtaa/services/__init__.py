from flask import current_app

from raabtaa import db
from raabtaa.services.appointment_service import AppointmentService
from raabtaa.services.availability_service import AvailabilityService
from raabtaa.services.catalog_service import CatalogService
from raabtaa.services.inventory_service import InventoryService
from raabtaa.services.notification_service import NotificationService
from raabtaa.services.order_service import OrderService
from raabtaa.services.procurement_service import ProcurementService


def order_service():
    return OrderService(
        db.session,
        pricing_source=current_app.config.get('ORDER_PRICING_SOURCE', 'client'),
        consistency=current_app.config.get('ORDER_CONSISTENCY', 'transactional')
    )


def appointment_service():
    return AppointmentService(db.session)


def availability_service():
    return AvailabilityService(db.session)


def catalog_service():
    return CatalogService(db.session)


def inventory_service():
    return InventoryService(db.session)


def notification_service():
    return NotificationService(db.session)


def procurement_service():
    return ProcurementService(db.session)
