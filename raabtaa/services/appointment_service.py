# Appointment service module for business logic
import logging
from datetime import datetime, time, timedelta

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from raabtaa.errors import ValidationError, NotFoundError, ProviderUnavailable, PersistenceError
from raabtaa.models import Appointment, AppointmentStatus, Service, User, NotificationEvent
from raabtaa.services.availability_service import AvailabilityService
from raabtaa.services.notification_service import NotificationService
from raabtaa.services.status_gate import APPOINTMENT_TRANSITIONS, check_transition
from raabtaa.utils.clock import utcnow
from raabtaa.utils.parsing import parse_date, parse_datetime, parse_positive_int

logger = logging.getLogger(__name__)


def format_appointment(appointment):
    return {
        'id': appointment.id,
        'provider_id': appointment.provider_id,
        'customer_id': appointment.customer_id,
        'service_id': appointment.service_id,
        'service_name': appointment.service.name if appointment.service else None,
        'staff_id': appointment.staff_id,
        'appointment_date': appointment.appointment_date.isoformat(),
        'duration_mins': appointment.duration_mins,
        'status': appointment.status
    }


class AppointmentService:

    def __init__(self, session, notifier=None, availability=None, clock=utcnow):
        self.session = session
        self.notifier = notifier or NotificationService(session)
        self.availability = availability or AvailabilityService(session)
        self.clock = clock

    def _load_service(self, service_id, provider_id):
        service = self.session.get(Service, service_id)
        if not service:
            raise NotFoundError(f'Service with ID {service_id} not found')
        if service.owner_id != provider_id:
            raise ValidationError(f'Service {service_id} is not offered by provider {provider_id}')
        return service

    def request_appointment(self, provider_id, customer_id, appointment_date, duration_mins=None,
                            service_id=None, staff_id=None):
        """Book a slot with a provider.

        Rejected with ProviderUnavailable when the provider marked the day busy.
        The appointment starts confirmed only when its service auto-approves.
        Returns ``{'appointment_id': ..., 'status': ...}``.
        """
        if not provider_id or not customer_id:
            raise ValidationError('Missing required fields: provider_id, customer_id')
        when = parse_datetime(appointment_date, 'appointment_date')
        if when.date() < self.clock().date():
            raise ValidationError('Appointment date must not be in the past')
        if not self.session.get(User, provider_id):
            raise NotFoundError(f'Provider with ID {provider_id} not found')
        if not self.session.get(User, customer_id):
            raise NotFoundError(f'Customer with ID {customer_id} not found')

        try:
            # Lock the day's marker so a concurrent "busy" write cannot slip in
            if self.availability.is_busy(provider_id, when.date(), for_update=True):
                self.session.rollback()
                logger.info(f"Rejected booking with provider {provider_id} on busy day {when.date()}")
                raise ProviderUnavailable(f'Provider {provider_id} is not available on {when.date().isoformat()}')

            service = self._load_service(service_id, provider_id) if service_id else None
            if duration_mins is not None:
                duration = parse_positive_int(duration_mins, 'duration_mins')
            elif service:
                duration = service.duration_mins
            else:
                raise ValidationError('Missing duration_mins')
            if service and service.auto_approve:
                status = AppointmentStatus.CONFIRMED.value
            else:
                status = AppointmentStatus.PENDING.value

            appointment = Appointment(
                provider_id=provider_id,
                customer_id=customer_id,
                service_id=service.id if service else None,
                staff_id=staff_id,
                appointment_date=when,
                duration_mins=duration,
                status=status,
                created_at=self.clock()
            )
            self.session.add(appointment)
            self.session.commit()
        except (ValidationError, NotFoundError):
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error creating appointment with provider {provider_id}: {str(e)}")
            raise PersistenceError('Error creating appointment') from e

        appointment_id = appointment.id
        logger.info(f"Appointment {appointment_id} with provider {provider_id} created as {status}")
        if status == AppointmentStatus.CONFIRMED.value:
            title = 'New appointment booked'
        else:
            title = 'New appointment request'
        self.notifier.emit(
            provider_id,
            title,
            f'A customer booked {when.strftime("%Y-%m-%d %H:%M")} ({duration} mins).',
            'appointment',
            NotificationEvent.APPOINTMENT_REQUESTED,
            appointment_id
        )
        return {'appointment_id': appointment_id, 'status': status}

    def get_appointment(self, appointment_id, for_update=False):
        query = self.session.query(Appointment).filter_by(id=appointment_id)
        if for_update:
            query = query.with_for_update()
        appointment = query.first()
        if not appointment:
            raise NotFoundError(f'Appointment {appointment_id} not found')
        return appointment

    def update_status(self, appointment_id, new_status):
        """Apply a legal status move; returns ``(appointment, changed)``."""
        appointment = self.get_appointment(appointment_id, for_update=True)
        try:
            changed = check_transition(appointment.status, new_status, APPOINTMENT_TRANSITIONS, 'appointment')
        except ValidationError:
            self.session.rollback()
            raise
        if not changed:
            self.session.rollback()
            return appointment, False
        previous = appointment.status
        try:
            appointment.status = new_status.strip().lower()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error updating appointment {appointment_id}: {str(e)}")
            raise PersistenceError('Error updating appointment') from e
        logger.info(f"Appointment {appointment_id} moved from {previous} to {appointment.status}")
        return appointment, True

    def get_busy_slots(self, provider_id, day):
        """Non-cancelled bookings on the day; free intervals are left to the client."""
        day = parse_date(day)
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        appointments = (self.session.query(Appointment)
                        .filter(Appointment.provider_id == provider_id,
                                Appointment.appointment_date >= start,
                                Appointment.appointment_date < end,
                                Appointment.status != AppointmentStatus.CANCELLED.value)
                        .order_by(Appointment.appointment_date.asc())
                        .all())
        return [{
            'appointment_date': a.appointment_date.isoformat(),
            'duration_mins': a.duration_mins
        } for a in appointments]

    def list_for_user(self, user_id):
        return (self.session.query(Appointment)
                .filter(or_(Appointment.provider_id == user_id, Appointment.customer_id == user_id))
                .order_by(Appointment.appointment_date.asc())
                .all())
