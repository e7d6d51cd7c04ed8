import logging
import os
from dotenv import load_dotenv

load_dotenv()

from app import create_app

logging.basicConfig(level=logging.INFO)

env = os.environ.get('FLASK_ENV', 'development')
app = create_app(env)

if __name__ == '__main__':
    app.run(debug=True, port=5050)
