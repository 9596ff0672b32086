# Status transition gate shared by orders and appointments
import logging

from raabtaa.errors import ValidationError, InvalidTransitionError
from raabtaa.models.order_model import OrderStatus
from raabtaa.models.appointment_model import AppointmentStatus

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS = {
    OrderStatus.PENDING.value: [OrderStatus.ACCEPTED.value, OrderStatus.CANCELLED.value],
    OrderStatus.ACCEPTED.value: [OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value],
    OrderStatus.COMPLETED.value: [],
    OrderStatus.CANCELLED.value: []
}

APPOINTMENT_TRANSITIONS = {
    AppointmentStatus.PENDING.value: [AppointmentStatus.CONFIRMED.value, AppointmentStatus.CANCELLED.value],
    AppointmentStatus.CONFIRMED.value: [AppointmentStatus.CANCELLED.value],
    AppointmentStatus.CANCELLED.value: []
}


def normalize_status(value, transitions):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('Missing status field')
    status = value.strip().lower()
    if status not in transitions:
        raise ValidationError(f'Invalid status: {value}. Allowed: {", ".join(transitions)}')
    return status


def check_transition(current, new_status, transitions, entity='order'):
    """Validate a status move and report whether it changes anything.

    Returns False for a same-state update, which callers treat as a no-op.
    """
    new_status = normalize_status(new_status, transitions)
    if new_status == current:
        logger.debug(f"Ignoring same-state {entity} update to {new_status}")
        return False
    if new_status not in transitions.get(current, []):
        raise InvalidTransitionError(f'Invalid {entity} status transition from {current} to {new_status}')
    return True
