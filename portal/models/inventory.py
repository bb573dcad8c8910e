from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from portal.utils.dates import utcnow

from .base import TenantModel, TimestampMixin


class InventoryItem(TimestampMixin, TenantModel):
    __tablename__ = "inventory_items"
    __table_args__ = (UniqueConstraint("organization_id", "sku", name="uq_inventory_sku"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    sku = Column(String(100), nullable=True)
    category = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, default=0, nullable=False)
    location = Column(String(200), nullable=True)
    unit_cost = Column(Float, nullable=True)
    reorder_level = Column(Integer, default=5, nullable=False)
    image_url = Column(String(500), nullable=True)

    checkouts = relationship("InventoryCheckout", back_populates="item", cascade="all, delete-orphan")


class InventoryCheckout(TimestampMixin, TenantModel):
    __tablename__ = "inventory_checkouts"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    checkout_date = Column(DateTime, default=utcnow, nullable=False)
    expected_return = Column(DateTime, nullable=True)
    return_date = Column(DateTime, nullable=True)
    status = Column(String(20), default="active", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    item = relationship("InventoryItem", back_populates="checkouts", lazy="selectin")
    user = relationship("User", lazy="selectin")
