"""Softagon - document management, workflow and helpdesk data layer.

Relational schema (SQLAlchemy models and Alembic migrations) and an async
persistence access layer for the GED, BPM and ticketing domains.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
