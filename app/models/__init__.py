from app.models.homework import AssignmentStatus, SendMode, LegacyHomework, HomeworkAssignment
from app.models.notification import Notification, NotificationType

__all__ = [
    'AssignmentStatus', 'SendMode', 'LegacyHomework', 'HomeworkAssignment',
    'Notification', 'NotificationType',
]
