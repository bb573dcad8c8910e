# base.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import declarative_base, declared_attr

from portal.utils.dates import utcnow

Base = declarative_base()


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class TenantModel(Base):
    """
    A base for multi-tenant tables.
    Every row belongs to exactly one organization.
    """
    __abstract__ = True

    @declared_attr
    def organization_id(cls):
        return Column(
            Integer,
            ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
