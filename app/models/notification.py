import enum
from datetime import datetime, timezone
from app.extensions import db


class NotificationType(enum.Enum):
    HOMEWORK_ASSIGNED = 'homework_assigned'
    HOMEWORK_REVIEWED = 'homework_reviewed'
    HOMEWORK_REMINDER = 'homework_reminder'
    HOMEWORK_OVERDUE = 'homework_overdue'


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False, default='')
    type = db.Column(db.Enum(NotificationType), nullable=False)
    dedupe_key = db.Column(db.String(120), nullable=True, unique=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    link = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f'<Notification {self.title} -> {self.user_id}>'
