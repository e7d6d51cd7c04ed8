import json
from datetime import datetime, timedelta, timezone

import pytest

from app.extensions import db
from app.models.homework import AssignmentStatus, HomeworkAssignment, LegacyHomework
from app.utils.engine import get_legacy_migrator
from app.utils.errors import ConflictError
from app.utils.helpers import as_utc
from app.utils.legacy_migration import (
    LegacyHomeworkRecord, LegacyMigrator, normalize_legacy_status, plan_migration,
)
from tests.fakes import InMemoryAssignmentStore, ListLegacySource

CREATED = datetime(2025, 9, 1, 8, 0, tzinfo=timezone.utc)
UPDATED = CREATED + timedelta(days=2)
COMPLETED = CREATED + timedelta(days=1)


def legacy(id, **kwargs):
    kwargs.setdefault('teacher_id', 10)
    kwargs.setdefault('student_id', 20)
    kwargs.setdefault('text', f'Homework #{id}')
    kwargs.setdefault('created_at', CREATED)
    kwargs.setdefault('updated_at', UPDATED)
    return LegacyHomeworkRecord(id=id, **kwargs)


# ── Status normalization ────────────────────────────────────────────────────

@pytest.mark.parametrize('is_done, status, expected', [
    (True, 'DONE', AssignmentStatus.REVIEWED),
    (True, 'ASSIGNED', AssignmentStatus.REVIEWED),
    (True, 'ARCHIVED', AssignmentStatus.REVIEWED),
    (True, None, AssignmentStatus.REVIEWED),
    (False, 'DONE', AssignmentStatus.REVIEWED),
    (False, 'IN_PROGRESS', AssignmentStatus.SENT),
    (False, 'ARCHIVED', AssignmentStatus.DRAFT),
    (False, None, AssignmentStatus.DRAFT),
])
def test_normalize_legacy_status(is_done, status, expected):
    assert normalize_legacy_status(status, is_done) == expected


def test_normalize_legacy_status_is_case_insensitive():
    assert normalize_legacy_status(' assigned ', False) == AssignmentStatus.SENT
    assert normalize_legacy_status('done', False) == AssignmentStatus.REVIEWED


# ── Planning ────────────────────────────────────────────────────────────────

def test_plan_sent_record():
    request = plan_migration(legacy(1, status='ASSIGNED', deadline=CREATED + timedelta(days=7)))
    assert request.status == AssignmentStatus.SENT
    assert request.legacy_homework_id == 1
    assert request.sent_at == CREATED
    assert request.reviewed_at is None
    assert request.deadline_at == CREATED + timedelta(days=7)


def test_plan_reviewed_record_prefers_completed_at():
    request = plan_migration(legacy(2, is_done=True, completed_at=COMPLETED))
    assert request.status == AssignmentStatus.REVIEWED
    assert request.sent_at == CREATED
    assert request.reviewed_at == COMPLETED


def test_plan_reviewed_record_falls_back_to_updated_at():
    request = plan_migration(legacy(3, status='DONE'))
    assert request.reviewed_at == UPDATED


def test_plan_draft_record_has_no_timestamps():
    request = plan_migration(legacy(4, status='whatever'))
    assert request.status == AssignmentStatus.DRAFT
    assert request.sent_at is None
    assert request.reviewed_at is None


def test_plan_resets_reminder_bookkeeping():
    fields = plan_migration(legacy(5, status='ASSIGNED')).to_fields()
    assert fields['reminder_24h_sent_at'] is None
    assert fields['reminder_morning_sent_at'] is None
    assert fields['reminder_3h_sent_at'] is None
    assert fields['overdue_reminder_count'] == 0
    assert fields['last_overdue_reminder_at'] is None


def test_plan_truncates_long_title():
    request = plan_migration(legacy(6, text='word ' * 100))
    assert len(request.title) == 120
    assert request.title.endswith('...')


def test_plan_empty_record_gets_placeholders():
    request = plan_migration(legacy(7, text='', attachments='garbage'))
    assert request.title == 'Homework (legacy)'
    assert [b.content for b in request.content_snapshot] == ['Legacy homework']


def test_record_from_mapping_tolerates_loose_types():
    record = LegacyHomeworkRecord.from_row({
        'id': 8, 'teacher_id': 1, 'student_id': 2, 'text': None, 'status': 5,
        'is_done': 0, 'created_at': datetime(2025, 1, 1, 9, 0),
    })
    assert record.text == ''
    assert record.status is None
    assert record.is_done is False
    assert record.created_at.tzinfo is not None


# ── Migrator ────────────────────────────────────────────────────────────────

def test_migration_is_idempotent():
    records = [legacy(i, status='ASSIGNED') for i in range(1, 6)]
    store = InMemoryAssignmentStore()
    migrator = LegacyMigrator(ListLegacySource(records), store, batch_size=2)

    first = migrator.run()
    assert (first.processed, first.created, first.skipped) == (5, 5, 0)

    second = migrator.run()
    assert (second.processed, second.created, second.skipped) == (5, 0, 5)
    assert len(store.records) == 5


def test_migration_reports_each_batch_with_cursor():
    records = [legacy(i) for i in (3, 7, 9, 12, 15)]
    source = ListLegacySource(records)
    cursors = []
    LegacyMigrator(source, InMemoryAssignmentStore(), batch_size=2).run(
        on_batch=lambda report: cursors.append(report.cursor)
    )
    assert cursors == [7, 12, 15]
    assert source.calls == [None, 7, 12, 15]


def test_migration_resumes_from_cursor_without_duplicates():
    records = [legacy(i) for i in range(1, 5)]
    store = InMemoryAssignmentStore()
    LegacyMigrator(ListLegacySource(records[:2]), store).run()

    report = LegacyMigrator(ListLegacySource(records), store).run(cursor=1)
    assert (report.processed, report.created, report.skipped) == (3, 2, 1)
    assert sorted(a.legacy_homework_id for a in store.records.values()) == [1, 2, 3, 4]


def test_migration_counts_concurrent_insert_as_skipped():
    class RacingStore(InMemoryAssignmentStore):
        """Another worker inserts the record between the pre-check and the create."""

        def create(self, request):
            super().create(request)
            raise ConflictError('duplicate legacy id')

    report = LegacyMigrator(ListLegacySource([legacy(1)]), RacingStore()).run()
    assert (report.created, report.skipped) == (0, 1)


def test_migration_survives_dirty_attachment_data():
    records = [
        legacy(1, status='ASSIGNED', attachments='[{"url": "https://cdn/a.pdf", "size": 1' + '0' * 400 + '}]'),
        legacy(2, status='ASSIGNED', attachments='[' * 100000 + ']' * 100000),
        legacy(3, status='ASSIGNED', attachments='[{"url": "https://cdn/b.pdf", "size": 3.5}]'),
    ]
    store = InMemoryAssignmentStore()
    report = LegacyMigrator(ListLegacySource(records), store).run()

    assert (report.processed, report.created, report.skipped) == (3, 3, 0)
    by_legacy_id = {a.legacy_homework_id: a for a in store.records.values()}
    assert [b.type for b in by_legacy_id[1].blocks] == ['TEXT', 'MEDIA']
    assert [b.type for b in by_legacy_id[2].blocks] == ['TEXT']
    assert by_legacy_id[3].blocks[1].attachments[0].size == 3.5


def test_migration_aborts_on_store_failure():
    class FailingStore(InMemoryAssignmentStore):
        def create(self, request):
            raise RuntimeError('database unavailable')

    with pytest.raises(RuntimeError):
        LegacyMigrator(ListLegacySource([legacy(1)]), FailingStore()).run()


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        LegacyMigrator(ListLegacySource([]), InMemoryAssignmentStore(), batch_size=0)


# ── Against the database ────────────────────────────────────────────────────

def test_sql_backfill_twice(app):
    db.session.add_all([
        LegacyHomework(id=1, teacher_id=10, student_id=20, text='Read pages 10-20',
                       attachments=json.dumps([{'url': 'https://cdn/p.pdf', 'size': '2048'}]),
                       status='ASSIGNED', created_at=CREATED, updated_at=UPDATED),
        LegacyHomework(id=2, teacher_id=10, student_id=21, text='', attachments='{oops',
                       is_done=True, created_at=CREATED, updated_at=UPDATED, completed_at=COMPLETED),
        LegacyHomework(id=3, teacher_id=11, student_id=20, text='Draft idea',
                       status=None, created_at=CREATED, updated_at=UPDATED),
    ])
    db.session.commit()

    first = get_legacy_migrator(app).run()
    second = get_legacy_migrator(app).run()

    assert (first.created, first.skipped) == (3, 0)
    assert (second.created, second.skipped) == (0, 3)
    assert HomeworkAssignment.query.count() == 3

    sent = HomeworkAssignment.query.filter_by(legacy_homework_id=1).one()
    assert sent.status == AssignmentStatus.SENT
    assert as_utc(sent.sent_at) == CREATED
    assert [b.type for b in sent.blocks] == ['TEXT', 'MEDIA']
    assert sent.blocks[1].attachments[0].size == 2048

    reviewed = HomeworkAssignment.query.filter_by(legacy_homework_id=2).one()
    assert reviewed.status == AssignmentStatus.REVIEWED
    assert as_utc(reviewed.reviewed_at) == COMPLETED
    assert reviewed.title == 'Homework (legacy)'

    draft = HomeworkAssignment.query.filter_by(legacy_homework_id=3).one()
    assert draft.status == AssignmentStatus.DRAFT
    assert draft.sent_at is None
