import logging
import os
from dotenv import load_dotenv

load_dotenv()

from celery import Celery
from app import create_app

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = create_app(os.environ.get('FLASK_ENV', 'development'))

celery = Celery(app.name)
celery.conf.update(
    broker_url=app.config['CELERY_BROKER_URL'],
    result_backend=app.config['CELERY_RESULT_BACKEND'],
    task_always_eager=not app.config['CELERY_BROKER_URL'],
    beat_schedule={
        'evaluate-homework-reminders': {
            'task': 'celery_worker.evaluate_homework_reminders',
            'schedule': float(app.config['HOMEWORK_REMINDER_TICK_SECONDS']),
        },
    },
)


@celery.task
def evaluate_homework_reminders(now=None):
    """Periodic tick: deliver every reminder due at ``now`` (ISO string, default current time)."""
    with app.app_context():
        from app.utils.engine import get_reminder_scheduler
        from app.utils.helpers import parse_datetime

        signals = get_reminder_scheduler().evaluate(parse_datetime(now))
        return [s.to_dict() for s in signals]


@celery.task
def backfill_legacy_homework(cursor=None):
    """Migrate legacy homework rows into assignments. Safe to re-run."""
    with app.app_context():
        from app.utils.engine import get_legacy_migrator

        report = get_legacy_migrator().run(cursor=cursor)
        return report.to_dict()
