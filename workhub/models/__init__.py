"""
WorkHub persistence layer.

``db`` is the single Flask-SQLAlchemy handle; every store record is read
and written through ``db.session``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from workhub.models.store_record import StoreRecord  # noqa: E402,F401
