"""
Deadline reminders for sent homework.

Four reminder kinds exist. The three pre-deadline kinds fire at most once per
assignment, guarded by their ``*_sent_at`` field. The overdue kind repeats at
a bounded cadence, guarded by ``overdue_reminder_count`` and
``last_overdue_reminder_at``.

A kind is only recorded after its dispatch succeeded. The bookkeeping write is
conditioned on the values read before dispatch, so two concurrent ticks can
never both record the same firing.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.models.homework import AssignmentStatus
from app.utils.errors import ConflictError, DispatchError
from app.utils.helpers import as_utc, clamp, parse_time_of_day, utcnow

logger = logging.getLogger(__name__)


class ReminderKind(enum.Enum):
    REMINDER_24H = 'REMINDER_24H'
    REMINDER_MORNING = 'REMINDER_MORNING'
    REMINDER_3H = 'REMINDER_3H'
    OVERDUE = 'OVERDUE'


ONE_SHOT_FIELDS = {
    ReminderKind.REMINDER_24H: 'reminder_24h_sent_at',
    ReminderKind.REMINDER_MORNING: 'reminder_morning_sent_at',
    ReminderKind.REMINDER_3H: 'reminder_3h_sent_at',
}


@dataclass(frozen=True)
class DispatchSignal:
    assignment_id: int
    kind: ReminderKind

    def to_dict(self):
        return {'assignment_id': self.assignment_id, 'kind': self.kind.value}


@dataclass(frozen=True)
class ReminderSettings:
    timezone_name: str = 'UTC'
    reminder_24h_enabled: bool = True
    morning_enabled: bool = True
    morning_time: time = time(10, 0)
    reminder_3h_enabled: bool = True
    overdue_enabled: bool = True
    overdue_interval: timedelta = timedelta(hours=24)
    overdue_max_count: int = 3

    @classmethod
    def from_config(cls, config):
        timezone_name = config.get('HOMEWORK_TIMEZONE') or 'UTC'
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning('[REMINDERS] Unknown timezone %r, using UTC', timezone_name)
            timezone_name = 'UTC'

        try:
            interval_hours = float(config.get('HOMEWORK_OVERDUE_INTERVAL_HOURS', 24))
        except (TypeError, ValueError):
            interval_hours = 24
        if interval_hours <= 0:
            interval_hours = 24

        try:
            max_count = int(round(float(config.get('HOMEWORK_OVERDUE_MAX_COUNT', 3))))
        except (TypeError, ValueError):
            max_count = 3

        return cls(
            timezone_name=timezone_name,
            reminder_24h_enabled=bool(config.get('HOMEWORK_REMINDER_24H_ENABLED', True)),
            morning_enabled=bool(config.get('HOMEWORK_REMINDER_MORNING_ENABLED', True)),
            morning_time=parse_time_of_day(config.get('HOMEWORK_REMINDER_MORNING_TIME')),
            reminder_3h_enabled=bool(config.get('HOMEWORK_REMINDER_3H_ENABLED', True)),
            overdue_enabled=bool(config.get('HOMEWORK_OVERDUE_REMINDERS_ENABLED', True)),
            overdue_interval=timedelta(hours=interval_hours),
            overdue_max_count=clamp(max_count, 1, 10),
        )

    @property
    def zone(self):
        return ZoneInfo(self.timezone_name)


def is_reminder_eligible(assignment):
    return assignment.status == AssignmentStatus.SENT and assignment.deadline_at is not None


def due_reminder_kinds(assignment, now, settings):
    """Return the reminder kinds whose window contains ``now`` and that have not fired yet."""
    if not is_reminder_eligible(assignment):
        return []

    now = as_utc(now)
    deadline = as_utc(assignment.deadline_at)
    delta = deadline - now
    kinds = []

    if (settings.reminder_24h_enabled and assignment.reminder_24h_sent_at is None
            and timedelta(0) < delta <= timedelta(hours=24)):
        kinds.append(ReminderKind.REMINDER_24H)

    if settings.morning_enabled and assignment.reminder_morning_sent_at is None and delta > timedelta(0):
        local_now = now.astimezone(settings.zone)
        local_deadline = deadline.astimezone(settings.zone)
        if local_now.date() == local_deadline.date() and local_now.time() >= settings.morning_time:
            kinds.append(ReminderKind.REMINDER_MORNING)

    if (settings.reminder_3h_enabled and assignment.reminder_3h_sent_at is None
            and timedelta(0) < delta <= timedelta(hours=3)):
        kinds.append(ReminderKind.REMINDER_3H)

    if settings.overdue_enabled and delta < timedelta(0):
        count = assignment.overdue_reminder_count or 0
        last = as_utc(assignment.last_overdue_reminder_at)
        if count < settings.overdue_max_count and (last is None or now - last > settings.overdue_interval):
            kinds.append(ReminderKind.OVERDUE)

    return kinds


class ReminderScheduler:
    """
    Evaluates reminders against a reference instant.

    With a ``dispatcher`` the scheduler delivers each due kind itself and only
    records the kinds that were delivered. Without one it records every due
    kind and returns the signals so the caller can deliver them.
    """

    def __init__(self, store, settings=None, dispatcher=None, page_size=200):
        self.store = store
        self.settings = settings or ReminderSettings()
        self.dispatcher = dispatcher
        self.page_size = page_size

    def evaluate(self, now=None):
        now = as_utc(now) if now is not None else utcnow()
        signals = []
        cursor = None
        while True:
            records, cursor = self.store.scan_page(
                cursor, self.page_size, status=AssignmentStatus.SENT, with_deadline=True
            )
            if not records:
                break
            for assignment in records:
                signals.extend(self.evaluate_assignment(assignment, now))
        if signals:
            logger.info('[REMINDERS] tick at %s fired %d reminder(s)', now.isoformat(), len(signals))
        return signals

    def evaluate_assignment(self, assignment, now=None):
        now = as_utc(now) if now is not None else utcnow()
        kinds = due_reminder_kinds(assignment, now, self.settings)
        if not kinds:
            return []

        assignment_id = assignment.id
        expected = {'status': AssignmentStatus.SENT}
        overdue_count = assignment.overdue_reminder_count or 0

        delivered = []
        for kind in kinds:
            if self.dispatcher is not None:
                occurrence = overdue_count + 1 if kind == ReminderKind.OVERDUE else None
                try:
                    self.dispatcher.dispatch(assignment, kind, occurrence)
                except (DispatchError, TimeoutError) as e:
                    logger.warning('[REMINDERS] %s for assignment %s not sent: %s',
                                   kind.value, assignment_id, e)
                    continue
            delivered.append(kind)

        if not delivered:
            return []

        changes = {}
        for kind in delivered:
            if kind == ReminderKind.OVERDUE:
                changes['overdue_reminder_count'] = overdue_count + 1
                changes['last_overdue_reminder_at'] = now
                expected['overdue_reminder_count'] = overdue_count
            else:
                changes[ONE_SHOT_FIELDS[kind]] = now
                expected[ONE_SHOT_FIELDS[kind]] = None

        try:
            self.store.update(assignment_id, changes, expected=expected)
        except ConflictError:
            logger.info('[REMINDERS] assignment %s already handled by another tick', assignment_id)
            return []

        for kind in delivered:
            logger.info('[REMINDERS] %s fired for assignment %s', kind.value, assignment_id)
        return [DispatchSignal(assignment_id=assignment_id, kind=kind) for kind in delivered]
