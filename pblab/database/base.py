"""
Declarative base and common columns for ORM models
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utc_now():
    """Helper para SQLAlchemy default - retorna timestamp timezone-aware"""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class BaseModel:
    """Mixin with id and audit timestamps shared by every table"""

    id = Column(String(36), primary_key=True, default=_new_id)
    created_at = Column(DateTime, default=_utc_now, nullable=False)
    updated_at = Column(DateTime, default=_utc_now, onupdate=_utc_now, nullable=False)
