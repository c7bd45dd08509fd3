"""Database setup utilities.

This module centralises the configuration of the SQLAlchemy
engine and session. It exposes the ``db`` object used by
models throughout the application, along with a ``commit``
helper that converts integrity failures into the application's
own exceptions so the service layer never leaks raw driver
errors to clients.

Import ``db`` from ``brewnear`` rather than from this module
directly. The application factory initialises ``db`` with the
Flask app.
"""
from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError

from .errors import translate_db_error

db = SQLAlchemy()


def commit() -> None:
    """Commit the current session.

    On an integrity failure the session is rolled back and the
    translated application error (``ConflictError`` for duplicates,
    ``ValidationError`` for other constraint violations) is raised.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise translate_db_error(exc) from exc
