from clinic_flows.database import db
from sqlalchemy import Uuid
from datetime import datetime
import uuid


class Notification(db.Model):
    """In-app notification addressed to a staff user (or a patient)"""
    __tablename__ = 'notifications'

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user_id = db.Column(db.String(255))
    patient_id = db.Column(db.String(255))

    type = db.Column(db.String(50), nullable=False, default='system')
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    entity_type = db.Column(db.String(100))
    entity_id = db.Column(db.String(255))

    is_read = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.Index('idx_notification_user_id', 'user_id', 'is_read'),
    )

    def to_dict(self):
        return {
            'id': str(self.id),
            'user_id': self.user_id,
            'patient_id': self.patient_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
