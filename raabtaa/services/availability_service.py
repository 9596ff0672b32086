# Availability ledger: one free/busy marker per provider per day
import logging

from sqlalchemy.exc import SQLAlchemyError

from raabtaa.errors import ValidationError, PersistenceError
from raabtaa.models import AvailabilityEntry, AvailabilityStatus
from raabtaa.utils.parsing import parse_date

logger = logging.getLogger(__name__)

VALID_STATUSES = [s.value for s in AvailabilityStatus]


def format_availability(entry):
    return {
        'id': entry.id,
        'user_id': entry.user_id,
        'date': entry.date.isoformat(),
        'status': entry.status
    }


class AvailabilityService:

    def __init__(self, session):
        self.session = session

    def get_entry(self, user_id, day, for_update=False):
        query = self.session.query(AvailabilityEntry).filter_by(user_id=user_id, date=parse_date(day))
        if for_update:
            query = query.with_for_update()
        return query.first()

    def is_busy(self, user_id, day, for_update=False):
        # A missing row means the day is free
        entry = self.get_entry(user_id, day, for_update=for_update)
        return entry is not None and entry.status == AvailabilityStatus.BUSY.value

    def set_availability(self, user_id, day, status):
        """Upsert the marker for (user_id, day); the last write wins.

        Appointments already booked on a day later marked busy are left as they are.
        """
        if not user_id:
            raise ValidationError('Missing user_id')
        if not isinstance(status, str) or status.lower() not in VALID_STATUSES:
            raise ValidationError(f"Invalid status. Allowed: {', '.join(VALID_STATUSES)}")
        day = parse_date(day)
        status = status.lower()
        try:
            entry = self.get_entry(user_id, day, for_update=True)
            if entry:
                entry.status = status
            else:
                entry = AvailabilityEntry(user_id=user_id, date=day, status=status)
                self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to set availability for user {user_id} on {day}: {str(e)}")
            raise PersistenceError('Failed to update availability') from e
        logger.info(f"User {user_id} marked {day} as {status}")
        return entry

    def list_for_user(self, user_id):
        return (self.session.query(AvailabilityEntry)
                .filter_by(user_id=user_id)
                .order_by(AvailabilityEntry.date.asc())
                .all())
