"""
Notification emitter.

Emission is best-effort: it runs after the primary record has been committed,
never retries, and a database failure is logged and rolled back without
reaching the caller. A (recipient, event, related_id) triple is stored at most
once, so a repeated emit for the same event is skipped.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from raabtaa.errors import NotFoundError, PermissionDenied, PersistenceError
from raabtaa.models import Notification

logger = logging.getLogger(__name__)


def format_notification(notification):
    return {
        'id': notification.id,
        'user_id': notification.user_id,
        'title': notification.title,
        'message': notification.message,
        'type': notification.type,
        'event': notification.event,
        'related_id': notification.related_id,
        'read_status': notification.read_status,
        'created_at': notification.created_at.isoformat()
    }


class NotificationService:

    def __init__(self, session, clock=None):
        self.session = session
        self.clock = clock

    def emit(self, user_id, title, message, notification_type, event, related_id=None):
        """Create a notification row; returns it, or None when skipped or failed."""
        if user_id is None:
            logger.debug(f"Skipping {event} notification without recipient")
            return None
        try:
            existing = self.session.query(Notification).filter_by(
                user_id=user_id, event=event, related_id=related_id).first()
            if existing:
                logger.info(f"Notification {event} for user {user_id} on {related_id} already sent")
                return None
            notification = Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=notification_type,
                event=event,
                related_id=related_id
            )
            if self.clock:
                notification.created_at = self.clock()
            self.session.add(notification)
            self.session.commit()
            logger.info(f"Sent {event} notification {notification.id} to user {user_id}")
            return notification
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to send {event} notification to user {user_id}: {str(e)}")
            return None

    def list_for_user(self, user_id):
        notifications = (self.session.query(Notification)
                         .filter_by(user_id=user_id)
                         .order_by(Notification.created_at.desc(), Notification.id.desc())
                         .all())
        return notifications

    def unread_count(self, user_id):
        return self.session.query(Notification).filter_by(user_id=user_id, read_status=False).count()

    def mark_read(self, notification_id, user_id):
        notification = self.session.get(Notification, notification_id)
        if not notification:
            raise NotFoundError(f'Notification {notification_id} not found')
        if notification.user_id != user_id:
            raise PermissionDenied('Notification belongs to another user')
        if notification.read_status:
            return notification
        try:
            notification.read_status = True
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to mark notification {notification_id} read: {str(e)}")
            raise PersistenceError('Failed to update notification') from e
        return notification
