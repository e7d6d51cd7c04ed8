from flask import current_app

from app.utils.assignment_store import SqlAssignmentStore
from app.utils.legacy_migration import LegacyMigrator, SqlLegacyHomeworkSource
from app.utils.lifecycle_service import LifecycleController
from app.utils.notifier import NotificationDispatcher
from app.utils.reminder_service import ReminderScheduler, ReminderSettings


def _config(app):
    return (app or current_app).config


def get_lifecycle_controller(app=None):
    cfg = _config(app)
    return LifecycleController(
        SqlAssignmentStore(),
        notifier=NotificationDispatcher(timezone_name=cfg.get('HOMEWORK_TIMEZONE', 'UTC')),
        notify_on_send=cfg.get('HOMEWORK_NOTIFY_ON_SEND', True),
        notify_on_review=cfg.get('HOMEWORK_NOTIFY_ON_REVIEW', True),
    )


def get_reminder_scheduler(app=None, dispatch=True):
    """Scheduler wired to the in-app dispatcher, or signal-only when ``dispatch`` is False."""
    cfg = _config(app)
    settings = ReminderSettings.from_config(cfg)
    return ReminderScheduler(
        SqlAssignmentStore(),
        settings=settings,
        dispatcher=NotificationDispatcher(timezone_name=settings.timezone_name) if dispatch else None,
        page_size=cfg.get('HOMEWORK_SCAN_PAGE_SIZE', 200),
    )


def get_legacy_migrator(app=None):
    cfg = _config(app)
    return LegacyMigrator(
        SqlLegacyHomeworkSource(),
        SqlAssignmentStore(),
        batch_size=cfg.get('HOMEWORK_MIGRATION_BATCH_SIZE', 200),
    )
