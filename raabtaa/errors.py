"""Exceptions raised by the order and appointment engines.

Every error carries the HTTP status the API layer answers with, so routes can
let them propagate to the single RESTX error handler.
"""


class RaabtaaError(Exception):
    status_code = 500
    default_message = 'Internal error'

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        payload = {'message': self.message, 'error': type(self).__name__}
        payload.update(self.details)
        return payload


class ValidationError(RaabtaaError):
    status_code = 400
    default_message = 'Invalid request'


class InvalidTransitionError(ValidationError):
    default_message = 'Invalid status transition'


class InsufficientStockError(ValidationError):
    status_code = 409
    default_message = 'Insufficient stock'


class ProviderUnavailable(RaabtaaError):
    status_code = 409
    default_message = 'Provider is not available on this date'


class NotFoundError(RaabtaaError):
    status_code = 404
    default_message = 'Not found'


class PermissionDenied(RaabtaaError):
    status_code = 403
    default_message = 'Permission denied'


class PersistenceError(RaabtaaError):
    status_code = 500
    default_message = 'Database error'


class PartialFailure(PersistenceError):
    """The order header was committed but its items were not."""
    default_message = 'Order created without its items'

    def __init__(self, order_id, message=None):
        super().__init__(message, order_id=order_id)
        self.order_id = order_id
