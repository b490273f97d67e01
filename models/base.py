"""
Database Base Module

Creates the SQLAlchemy database instance that all models inherit from,
plus the transaction helper every mutating operation runs inside.
This is separate to avoid circular imports.
"""

from contextlib import contextmanager
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

# Create the SQLAlchemy instance
# This will be initialized with the Flask app in create_app()
db = SQLAlchemy()

# Column precisions shared by every quantity / money / factor column
QTY = db.Numeric(18, 6)
MONEY = db.Numeric(18, 6)
FACTOR = db.Numeric(24, 12)


def utcnow():
    """Naive UTC timestamp (SQLite drops tzinfo, so store everything naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def atomic():
    """
    Run a unit of work as one database transaction.

    Commits when the block exits normally. Any exception rolls back every
    change made in the block and is re-raised, so callers never observe a
    partially applied operation. Nested use joins the outer block; only the
    outermost block commits.
    """
    session = db.session
    info = session.info
    depth = info.get('atomic_depth', 0)
    info['atomic_depth'] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        info['atomic_depth'] = depth
