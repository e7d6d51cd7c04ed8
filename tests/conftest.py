from datetime import timedelta

import pytest

from app import create_app
from app.extensions import db
from app.models.homework import AssignmentStatus
from app.utils.assignment_store import AssignmentCreateRequest
from app.utils.content_snapshot import build_snapshot
from tests.fakes import DEADLINE, InMemoryAssignmentStore, RecordingDispatcher


# ============================================================================
# FLASK APP & DATABASE
# ============================================================================

@pytest.fixture
def app():
    """Flask app on an in-memory SQLite database, fresh per test."""
    app = create_app('testing')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def store():
    return InMemoryAssignmentStore()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def make_sent_assignment(store):
    """Create a SENT assignment with the given deadline directly in the fake store."""
    def _make(deadline_at=DEADLINE, status=AssignmentStatus.SENT, **overrides):
        created_at = DEADLINE - timedelta(days=3)
        request = AssignmentCreateRequest(
            teacher_id=overrides.pop('teacher_id', 1),
            student_id=overrides.pop('student_id', 2),
            title='Read chapter 4',
            content_snapshot=build_snapshot('Read chapter 4', None),
            status=status,
            deadline_at=deadline_at,
            sent_at=created_at if status != AssignmentStatus.DRAFT else None,
            created_at=created_at,
        )
        assignment = store.create(request)
        for name, value in overrides.items():
            setattr(assignment, name, value)
        return assignment
    return _make
