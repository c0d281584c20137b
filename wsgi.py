"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db migrate -m "description"
    flask db upgrade
    flask init-labels
    flask seed-demo
"""

from workhub import create_app

app = create_app()
