from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from portal.utils.dates import utcnow

from .base import Base, TenantModel, TimestampMixin


class ContactSubmission(TenantModel):
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    subject = Column(String(300), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), default="new", nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Page(TimestampMixin, TenantModel):
    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("organization_id", "slug", name="uq_page_slug"),)

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    slug = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    meta_title = Column(String(300), nullable=True)
    meta_description = Column(String(500), nullable=True)
    is_draft = Column(Boolean, default=True, nullable=False)
    published_at = Column(DateTime, nullable=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class Testimonial(TimestampMixin, TenantModel):
    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True, index=True)
    author_name = Column(String(200), nullable=False)
    author_role = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    rating = Column(Integer, default=5, nullable=False)
    image_url = Column(String(500), nullable=True)
    is_approved = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)


class KnowledgeNode(TimestampMixin, TenantModel):
    __tablename__ = "knowledge_nodes"
    __table_args__ = (UniqueConstraint("organization_id", "slug", name="uq_knowledge_slug"),)

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    slug = Column(String(300), nullable=False)
    node_type = Column(String(20), default="markdown", nullable=False)
    content = Column(Text, nullable=True)
    url = Column(String(1000), nullable=True)
    parent_id = Column(Integer, ForeignKey("knowledge_nodes.id", ondelete="SET NULL"), nullable=True)
    order = Column(Integer, default=0, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class CalendarEvent(TimestampMixin, TenantModel):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=True)
    event_type = Column(String(50), default="event", nullable=False)
    color = Column(String(20), nullable=True)
    all_day = Column(Boolean, default=False, nullable=False)
    location = Column(String(300), nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)



class Announcement(TimestampMixin, TenantModel):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(20), default="general", nullable=False)
    target_id = Column(Integer, nullable=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    send_to_all = Column(Boolean, default=False, nullable=False)
    send_to_students = Column(Boolean, default=False, nullable=False)
    send_to_parents = Column(Boolean, default=False, nullable=False)
    send_to_teachers = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    author = relationship("User", lazy="selectin")
    reads = relationship("AnnouncementRead", back_populates="announcement", cascade="all, delete-orphan")


class AnnouncementRead(Base):
    __tablename__ = "announcement_reads"
    __table_args__ = (UniqueConstraint("announcement_id", "user_id", name="uq_announcement_read"),)

    id = Column(Integer, primary_key=True, index=True)
    announcement_id = Column(Integer, ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    read_at = Column(DateTime, default=utcnow, nullable=False)

    announcement = relationship("Announcement", back_populates="reads")
