from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil.parser import isoparse

from raabtaa.errors import ValidationError

CENTS = Decimal('0.01')


def parse_datetime(value, field='date'):
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = isoparse(value.strip().replace(' ', 'T', 1))
        except (ValueError, TypeError):
            raise ValidationError(f"Invalid {field}. Use ISO format (YYYY-MM-DDTHH:MM:SS)")
    else:
        raise ValidationError(f"Missing or invalid {field}")
    # Stored naive, in the timezone the client booked in
    return parsed.replace(tzinfo=None)


def parse_date(value, field='date'):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_datetime(value, field).date()


def parse_money(value, field='price'):
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Missing or invalid {field}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Invalid {field}: {value}")
    try:
        cents = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValidationError(f"Invalid {field}: {value}")
    if amount != cents:
        raise ValidationError(f"Invalid {field}: {value} has more than two decimal places")
    return cents


def parse_positive_int(value, field):
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value)
        else:
            raise ValidationError(f"{field} must be a positive integer")
    if value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value
