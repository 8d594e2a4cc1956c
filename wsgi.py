"""WSGI entrypoint for production servers (gunicorn)."""

import os

from dotenv import load_dotenv

load_dotenv()

from app import create_app

app = create_app(os.environ.get("FLASK_CONFIG") or "production")
