from flask_restx import Namespace, Resource
from flask_jwt_extended import jwt_required

from raabtaa.services import notification_service
from raabtaa.services.notification_service import format_notification
from raabtaa.utils.util import current_user_id

notification_ns = Namespace('notifications', description="The caller's notifications",
                            path='/api/notifications')


@notification_ns.route('')
class NotificationList(Resource):
    @jwt_required()
    def get(self):
        """Notifications for the caller, newest first"""
        user_id = current_user_id()
        service = notification_service()
        return {
            'notifications': [format_notification(n) for n in service.list_for_user(user_id)],
            'unread_count': service.unread_count(user_id)
        }, 200


@notification_ns.route('/<int:notification_id>/read')
class NotificationRead(Resource):
    @jwt_required()
    def put(self, notification_id):
        """Mark one of the caller's notifications as read"""
        notification = notification_service().mark_read(notification_id, current_user_id())
        return {'message': 'Notification marked as read', 'notification': format_notification(notification)}, 200
