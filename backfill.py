"""Backfill legacy homework rows into structured homework assignments."""
import logging
import os
import sys
from dotenv import load_dotenv

load_dotenv()

from app import create_app
from app.utils.engine import get_legacy_migrator
from app.utils.helpers import safe_int

logging.basicConfig(level=logging.INFO, format='%(message)s')

app = create_app(os.environ.get('FLASK_ENV', 'development'))


def _cursor_from_argv():
    for arg in sys.argv[1:]:
        if arg.startswith('--after='):
            return safe_int(arg.split('=', 1)[1], None)
    return None


if __name__ == '__main__':
    with app.app_context():
        try:
            report = get_legacy_migrator().run(cursor=_cursor_from_argv())
        except Exception as e:
            print(f'[BACKFILL] failed: {e}', file=sys.stderr)
            sys.exit(1)
        print(f'Done! processed={report.processed} created={report.created} '
              f'skipped={report.skipped} cursor={report.cursor}')
