"""
One-time backfill of legacy freeform homework into structured assignments.

The run is idempotent: each legacy record is inserted through
``store.create_if_absent`` keyed on ``legacy_homework_id``, so re-running from
scratch, resuming from any cursor, or replaying a batch twice never creates a
duplicate. The cursor only saves work; correctness does not depend on it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from app.extensions import db
from app.models.homework import AssignmentStatus, LegacyHomework, SendMode
from app.utils.assignment_store import AssignmentCreateRequest
from app.utils.content_snapshot import build_snapshot, derive_title
from app.utils.helpers import as_utc

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200


@dataclass(frozen=True)
class LegacyHomeworkRecord:
    id: int
    teacher_id: int
    student_id: int
    text: str = ''
    attachments: Any = None
    status: Optional[str] = None
    is_done: bool = False
    deadline: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        """Coerce a loosely-typed legacy row (ORM object or mapping) into a fixed record."""
        get = row.get if isinstance(row, dict) else (lambda name: getattr(row, name, None))
        text = get('text')
        status = get('status')
        return cls(
            id=get('id'),
            teacher_id=get('teacher_id'),
            student_id=get('student_id'),
            text=text if isinstance(text, str) else '',
            attachments=get('attachments'),
            status=status if isinstance(status, str) else None,
            is_done=bool(get('is_done')),
            deadline=as_utc(get('deadline')),
            created_at=as_utc(get('created_at')),
            updated_at=as_utc(get('updated_at')),
            completed_at=as_utc(get('completed_at')),
        )


def normalize_legacy_status(status, is_done):
    normalized = status.strip().upper() if isinstance(status, str) else ''
    if is_done or normalized == 'DONE':
        return AssignmentStatus.REVIEWED
    if normalized in ('ASSIGNED', 'IN_PROGRESS'):
        return AssignmentStatus.SENT
    return AssignmentStatus.DRAFT


def plan_migration(record):
    """Build the create request equivalent to one legacy record."""
    status = normalize_legacy_status(record.status, record.is_done)
    sent_at = None
    reviewed_at = None
    if status in (AssignmentStatus.SENT, AssignmentStatus.REVIEWED):
        sent_at = record.created_at
    if status == AssignmentStatus.REVIEWED:
        reviewed_at = record.completed_at or record.updated_at

    return AssignmentCreateRequest(
        teacher_id=record.teacher_id,
        student_id=record.student_id,
        legacy_homework_id=record.id,
        title=derive_title(record.text),
        content_snapshot=build_snapshot(record.text, record.attachments),
        status=status,
        send_mode=SendMode.MANUAL,
        deadline_at=record.deadline,
        sent_at=sent_at,
        reviewed_at=reviewed_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class LegacyHomeworkSource(ABC):

    @abstractmethod
    def fetch_batch(self, after_id, limit):
        """Return up to ``limit`` records with id greater than ``after_id``, ascending."""


class SqlLegacyHomeworkSource(LegacyHomeworkSource):

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def fetch_batch(self, after_id, limit):
        query = self.session.query(LegacyHomework)
        if after_id is not None:
            query = query.filter(LegacyHomework.id > after_id)
        rows = query.order_by(LegacyHomework.id).limit(limit).all()
        return [LegacyHomeworkRecord.from_row(row) for row in rows]


@dataclass
class MigrationReport:
    processed: int = 0
    created: int = 0
    skipped: int = 0
    cursor: Optional[int] = None

    def to_dict(self):
        return {
            'processed': self.processed,
            'created': self.created,
            'skipped': self.skipped,
            'cursor': self.cursor,
        }


class LegacyMigrator:

    def __init__(self, source, store, batch_size=DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError('batch_size must be positive')
        self.source = source
        self.store = store
        self.batch_size = batch_size

    def run(self, cursor=None, on_batch=None):
        """
        Page through legacy records and migrate each one.

        ``cursor`` resumes after a given legacy id. ``on_batch`` is called with
        the report after every batch so the caller can persist the cursor.
        Store errors other than an already-migrated record propagate and abort
        the run.
        """
        report = MigrationReport(cursor=cursor)
        while True:
            batch = self.source.fetch_batch(report.cursor, self.batch_size)
            if not batch:
                break

            for record in batch:
                report.processed += 1
                _, created = self.store.create_if_absent(plan_migration(record))
                if created:
                    report.created += 1
                else:
                    report.skipped += 1

            report.cursor = batch[-1].id
            logger.info('[BACKFILL] processed=%d created=%d skipped=%d',
                        report.processed, report.created, report.skipped)
            if on_batch is not None:
                on_batch(report)

        logger.info('[BACKFILL] done processed=%d created=%d skipped=%d',
                    report.processed, report.created, report.skipped)
        return report
