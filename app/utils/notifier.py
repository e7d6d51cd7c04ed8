import logging
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.extensions import db
from app.models.notification import Notification, NotificationType
from app.utils.errors import DispatchError
from app.utils.helpers import as_utc

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {
    'ASSIGNED': NotificationType.HOMEWORK_ASSIGNED,
    'REVIEWED': NotificationType.HOMEWORK_REVIEWED,
    'REMINDER_24H': NotificationType.HOMEWORK_REMINDER,
    'REMINDER_MORNING': NotificationType.HOMEWORK_REMINDER,
    'REMINDER_3H': NotificationType.HOMEWORK_REMINDER,
    'OVERDUE': NotificationType.HOMEWORK_OVERDUE,
}

TITLES = {
    'ASSIGNED': 'New homework',
    'REVIEWED': 'Homework reviewed',
    'REMINDER_24H': 'Homework due in 24 hours',
    'REMINDER_MORNING': 'Homework due today',
    'REMINDER_3H': 'Homework due in 3 hours',
    'OVERDUE': 'Homework overdue',
}


def format_deadline(deadline_at, timezone_name='UTC'):
    if deadline_at is None:
        return 'no deadline'
    local = as_utc(deadline_at).astimezone(ZoneInfo(timezone_name))
    return local.strftime('%Y-%m-%d %H:%M')


def build_message(kind, assignment, timezone_name='UTC'):
    deadline = format_deadline(assignment.deadline_at, timezone_name)
    if kind == 'ASSIGNED':
        return f'New homework: {assignment.title}\nDeadline: {deadline}'
    if kind == 'REVIEWED':
        return f'Homework reviewed: {assignment.title}\nThe result is available in the app.'
    if kind == 'REMINDER_24H':
        return f'Reminder: deadline in 24 hours\n{assignment.title}\nDue: {deadline}'
    if kind == 'REMINDER_MORNING':
        return f'Homework is due today\n{assignment.title}\nDue: {deadline}'
    if kind == 'REMINDER_3H':
        return f'Deadline is close (3 hours)\n{assignment.title}\nDue: {deadline}'
    if kind == 'OVERDUE':
        return f'Homework overdue: {assignment.title}\nDeadline was: {deadline}'
    raise ValueError(f'Unknown notification kind: {kind!r}')


class NotificationDispatcher:
    """
    Delivers homework notifications as in-app ``Notification`` rows for the student.

    Each notification carries a unique dedupe key and is committed on its own.
    A key that already exists counts as delivered, so re-dispatching after a
    crash between delivery and the scheduler's bookkeeping write is harmless.
    """

    def __init__(self, session=None, timezone_name='UTC'):
        self._session = session
        self.timezone_name = timezone_name

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    @staticmethod
    def dedupe_key(assignment, kind, occurrence=None):
        key = f'HOMEWORK_{kind}:{assignment.id}'
        if occurrence is not None:
            key = f'{key}:{occurrence}'
        return key

    def dispatch(self, assignment, kind, occurrence=None):
        """Return True when a new notification was written, False when it already existed."""
        kind = getattr(kind, 'value', kind)
        key = self.dedupe_key(assignment, kind, occurrence)
        try:
            if self.session.query(Notification.id).filter_by(dedupe_key=key).first():
                logger.info('[NOTIFY] %s already delivered', key)
                return False
            self.session.add(Notification(
                user_id=assignment.student_id,
                title=TITLES[kind],
                message=build_message(kind, assignment, self.timezone_name),
                type=NOTIFICATION_TYPES[kind],
                dedupe_key=key,
                link=f'/homework/{assignment.id}',
            ))
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info('[NOTIFY] %s delivered concurrently', key)
            return False
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DispatchError(f'Could not deliver {key}: {e}') from e
        return True
