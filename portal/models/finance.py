from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, TenantModel, TimestampMixin


class Invoice(TimestampMixin, TenantModel):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("organization_id", "invoice_number", name="uq_invoice_number"),)

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), nullable=False)
    parent_id = Column(Integer, ForeignKey("parent_profiles.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), default="unpaid", nullable=False, index=True)
    issue_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=False)
    paid_date = Column(DateTime, nullable=True)
    subtotal = Column(Float, default=0, nullable=False)
    tax = Column(Float, default=0, nullable=False)
    total = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    parent = relationship("ParentProfile", lazy="selectin")
    items = relationship(
        "InvoiceItem", back_populates="invoice", lazy="selectin",
        cascade="all, delete-orphan", order_by="InvoiceItem.id"
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    description = Column(String(500), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    student_id = Column(Integer, ForeignKey("student_profiles.id", ondelete="SET NULL"), nullable=True)
    course_id = Column(Integer, ForeignKey("lms_courses.id", ondelete="SET NULL"), nullable=True)

    invoice = relationship("Invoice", back_populates="items")


class Expense(TimestampMixin, TenantModel):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    vendor = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, index=True)
    receipt_url = Column(String(500), nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    incurred_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    quarter = Column(String(10), nullable=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurring_frequency = Column(String(20), nullable=True)
    next_recurring_date = Column(DateTime, nullable=True)


class PayrollRun(TimestampMixin, TenantModel):
    __tablename__ = "payroll_runs"

    id = Column(Integer, primary_key=True, index=True)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    payment_date = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), default="processed", nullable=False)
    total_amount = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    items = relationship(
        "PayrollItem", back_populates="run", lazy="selectin",
        cascade="all, delete-orphan", order_by="PayrollItem.id"
    )

    @property
    def item_count(self) -> int:
        return len(self.items)


class PayrollItem(Base):
    __tablename__ = "payroll_items"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(Integer, ForeignKey("payroll_runs.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    base_salary = Column(Float, default=0, nullable=False)
    bonus = Column(Float, default=0, nullable=False)
    deductions = Column(Float, default=0, nullable=False)
    net_pay = Column(Float, nullable=False)
    payment_method = Column(String(50), default="Direct Deposit", nullable=False)
    notes = Column(Text, nullable=True)

    run = relationship("PayrollRun", back_populates="items")
    user = relationship("User", lazy="selectin")
