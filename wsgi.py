"""
WSGI / Flask CLI entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi validate-state-table
"""

from subsidy_workflow import create_app

app = create_app()
