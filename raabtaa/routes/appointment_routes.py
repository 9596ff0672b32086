from flask_restx import Namespace, Resource, fields
from flask import request
from flask_jwt_extended import jwt_required

from raabtaa.errors import PermissionDenied, ValidationError
from raabtaa.models import AppointmentStatus
from raabtaa.services import appointment_service, availability_service
from raabtaa.services.appointment_service import format_appointment
from raabtaa.services.availability_service import format_availability
from raabtaa.utils.util import current_user_id, ensure_self

appointment_ns = Namespace('appointments', description='Operations related to appointments',
                           path='/api/appointments')
availability_ns = Namespace('availability', description='Provider free/busy days', path='/api/availability')

# Swagger models
appointment_model = appointment_ns.model('Appointment', {
    'provider_id': fields.Integer(required=True, description='ID of the provider'),
    'service_id': fields.Integer(description='ID of the booked service'),
    'staff_id': fields.Integer(description='ID of the staff member'),
    'appointment_date': fields.String(required=True, description='Date in ISO format'),
    'duration_mins': fields.Integer(description='Length in minutes, defaults to the service duration')
})

status_model = appointment_ns.model('AppointmentStatus', {
    'status': fields.String(required=True, description='pending, confirmed or cancelled')
})

availability_model = availability_ns.model('Availability', {
    'user_id': fields.Integer(description='Defaults to the caller'),
    'date': fields.String(required=True, description='YYYY-MM-DD'),
    'status': fields.String(required=True, description='free or busy')
})


@appointment_ns.route('')
class AppointmentList(Resource):
    @jwt_required()
    @appointment_ns.expect(appointment_model)
    def post(self):
        """Request an appointment with a provider"""
        data = request.get_json(silent=True) or {}
        result = appointment_service().request_appointment(
            provider_id=data.get('provider_id'),
            customer_id=current_user_id(),
            appointment_date=data.get('appointment_date'),
            duration_mins=data.get('duration_mins'),
            service_id=data.get('service_id'),
            staff_id=data.get('staff_id')
        )
        return {'message': f"Appointment {result['status']}", **result}, 201


@appointment_ns.route('/<int:user_id>')
class UserAppointments(Resource):
    @jwt_required()
    def get(self, user_id):
        """Appointments where the user is provider or customer"""
        ensure_self(user_id)
        return {'appointments': [format_appointment(a) for a in appointment_service().list_for_user(user_id)]}, 200


@appointment_ns.route('/slots/<int:provider_id>')
class BusySlots(Resource):
    @jwt_required()
    @appointment_ns.doc(params={'date': 'Day to inspect (YYYY-MM-DD)'})
    def get(self, provider_id):
        """Booked slots of a provider on a day"""
        day = request.args.get('date')
        if not day:
            raise ValidationError('Missing date parameter')
        return {'slots': appointment_service().get_busy_slots(provider_id, day)}, 200


@appointment_ns.route('/<int:appointment_id>/status')
class AppointmentStatusResource(Resource):
    @jwt_required()
    @appointment_ns.expect(status_model)
    def put(self, appointment_id):
        """Confirm or cancel an appointment"""
        caller = current_user_id()
        service = appointment_service()
        appointment = service.get_appointment(appointment_id)
        data = request.get_json(silent=True) or {}
        new_status = data.get('status')
        if caller not in (appointment.provider_id, appointment.customer_id):
            raise PermissionDenied('Permission denied')
        cancelling = isinstance(new_status, str) and new_status.lower() == AppointmentStatus.CANCELLED.value
        if caller != appointment.provider_id and not cancelling:
            raise PermissionDenied('Customers can only cancel their appointments')
        appointment, changed = service.update_status(appointment_id, new_status)
        return {'message': 'Appointment updated' if changed else 'Appointment unchanged',
                'appointment': format_appointment(appointment)}, 200


@availability_ns.route('')
class AvailabilityList(Resource):
    @jwt_required()
    @availability_ns.expect(availability_model)
    def post(self):
        """Mark one of the caller's days free or busy"""
        data = request.get_json(silent=True) or {}
        user_id = data.get('user_id', current_user_id())
        ensure_self(user_id, 'You can only change your own availability')
        entry = availability_service().set_availability(user_id, data.get('date'), data.get('status'))
        return {'message': 'Availability updated', 'availability': format_availability(entry)}, 200


@availability_ns.route('/<int:user_id>')
class UserAvailability(Resource):
    @jwt_required()
    def get(self, user_id):
        """All availability markers of a user"""
        return {'availability': [format_availability(e) for e in availability_service().list_for_user(user_id)]}, 200
