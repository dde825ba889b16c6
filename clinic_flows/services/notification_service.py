"""
Notification Service - creates in-app notifications.

Failures are logged and rolled back; callers get None instead of an
exception so a broken notification never breaks the caller.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from clinic_flows.database import db
from clinic_flows.models.notification import Notification

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = (
    'appointment',
    'appointment_reminder',
    'invoice',
    'payment',
    'insurance_claim',
    'insurance_claim_submitted',
    'lab_result',
    'prescription',
    'message',
    'system',
    'patient_registration',
    'doctor_assignment',
)


def create_notification(
    title: str,
    message: str,
    user_id: Optional[str] = None,
    patient_id: Optional[str] = None,
    type: str = 'system',
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
) -> Optional[Notification]:
    """
    Insert a notification.

    Args:
        title: Notification title
        message: Notification body
        user_id: Staff user the notification is addressed to
        patient_id: Patient the notification is addressed to
        type: One of NOTIFICATION_TYPES
        entity_type: Related entity kind (e.g. 'appointment')
        entity_id: Related entity id

    Returns:
        The created Notification, or None if it could not be stored
    """
    if type not in NOTIFICATION_TYPES:
        logger.warning(f"Unknown notification type '{type}', storing as 'system'")
        type = 'system'

    try:
        notification = Notification(
            user_id=str(user_id) if user_id else None,
            patient_id=str(patient_id) if patient_id else None,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            is_read=False,
        )
        db.session.add(notification)
        db.session.commit()
        return notification
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error creating notification: {e}")
        return None


def create_notifications_for_users(user_ids: Iterable[str], title: str, message: str, **params) -> List[Notification]:
    """Create the same notification for several users, skipping failures."""
    notifications = []
    for user_id in user_ids:
        notification = create_notification(title, message, user_id=user_id, **params)
        if notification is not None:
            notifications.append(notification)
    return notifications
