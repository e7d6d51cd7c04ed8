import os

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name, default=True):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Celery
    CELERY_BROKER_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')

    # Homework reminders
    HOMEWORK_TIMEZONE = os.environ.get('HOMEWORK_TIMEZONE', 'UTC')
    HOMEWORK_REMINDER_24H_ENABLED = _env_flag('HOMEWORK_REMINDER_24H_ENABLED')
    HOMEWORK_REMINDER_MORNING_ENABLED = _env_flag('HOMEWORK_REMINDER_MORNING_ENABLED')
    HOMEWORK_REMINDER_MORNING_TIME = os.environ.get('HOMEWORK_REMINDER_MORNING_TIME', '10:00')
    HOMEWORK_REMINDER_3H_ENABLED = _env_flag('HOMEWORK_REMINDER_3H_ENABLED')
    HOMEWORK_OVERDUE_REMINDERS_ENABLED = _env_flag('HOMEWORK_OVERDUE_REMINDERS_ENABLED')
    HOMEWORK_OVERDUE_INTERVAL_HOURS = os.environ.get('HOMEWORK_OVERDUE_INTERVAL_HOURS', 24)
    HOMEWORK_OVERDUE_MAX_COUNT = os.environ.get('HOMEWORK_OVERDUE_MAX_COUNT', 3)
    HOMEWORK_REMINDER_TICK_SECONDS = int(os.environ.get('HOMEWORK_REMINDER_TICK_SECONDS', 300))

    # Lifecycle notifications
    HOMEWORK_NOTIFY_ON_SEND = _env_flag('HOMEWORK_NOTIFY_ON_SEND')
    HOMEWORK_NOTIFY_ON_REVIEW = _env_flag('HOMEWORK_NOTIFY_ON_REVIEW')

    # Batch sizes
    HOMEWORK_MIGRATION_BATCH_SIZE = int(os.environ.get('HOMEWORK_MIGRATION_BATCH_SIZE', 200))
    HOMEWORK_SCAN_PAGE_SIZE = int(os.environ.get('HOMEWORK_SCAN_PAGE_SIZE', 200))


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        'sqlite:///' + os.path.join(basedir, 'instance', 'homework.db')
    )
    # No Redis needed for local dev; Celery tasks run eagerly
    CELERY_BROKER_URL = None
    CELERY_RESULT_BACKEND = None


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', '')

    @staticmethod
    def init_app(app):
        # Fix Heroku/Railway postgres:// -> postgresql://
        uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
        if uri.startswith('postgres://'):
            app.config['SQLALCHEMY_DATABASE_URI'] = uri.replace(
                'postgres://', 'postgresql://', 1
            )


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    CELERY_BROKER_URL = None
    CELERY_RESULT_BACKEND = None
    HOMEWORK_TIMEZONE = 'UTC'
    HOMEWORK_REMINDER_MORNING_TIME = '10:00'
    HOMEWORK_OVERDUE_INTERVAL_HOURS = 24
    HOMEWORK_OVERDUE_MAX_COUNT = 3


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}
