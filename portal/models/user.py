from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Table, Text,
    UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, TenantModel, TimestampMixin

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(TenantModel):
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("organization_id", "name", name="uq_role_org_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    description = Column(String(255), nullable=True)
    permissions = Column(JSON, default=list, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Role(name={self.name})>"


class User(TimestampMixin, TenantModel):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    username = Column(String(30), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    is_superuser = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)

    organization = relationship("Organization", back_populates="users")
    roles = relationship("Role", secondary=user_roles, lazy="selectin", order_by="Role.name")
    student_profile = relationship(
        "StudentProfile", back_populates="user", uselist=False,
        lazy="selectin", cascade="all, delete-orphan"
    )
    parent_profile = relationship(
        "ParentProfile", back_populates="user", uselist=False,
        lazy="selectin", cascade="all, delete-orphan"
    )
    teacher_profile = relationship(
        "TeacherProfile", back_populates="user", uselist=False,
        lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role_names(self) -> list:
        return [role.name for role in self.roles]

    def has_role(self, *names: str) -> bool:
        return any(role.name in names for role in self.roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role("Admin")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class StudentProfile(TenantModel):
    __tablename__ = "student_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    parent_id = Column(Integer, ForeignKey("parent_profiles.id", ondelete="SET NULL"), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    grade = Column(String(50), nullable=True)
    school_name = Column(String(200), nullable=True)
    phone_number = Column(String(50), nullable=True)
    performance_discount = Column(Float, default=0, nullable=False)

    user = relationship("User", back_populates="student_profile", lazy="selectin")
    parent = relationship("ParentProfile", back_populates="students", lazy="selectin")


class ParentProfile(TenantModel):
    __tablename__ = "parent_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)

    user = relationship("User", back_populates="parent_profile", lazy="selectin")
    students = relationship("StudentProfile", back_populates="parent", lazy="selectin")


class TeacherProfile(TenantModel):
    __tablename__ = "teacher_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    bio = Column(Text, nullable=True)
    specialization = Column(String(200), nullable=True)
    salary = Column(Float, nullable=True)

    user = relationship("User", back_populates="teacher_profile", lazy="selectin")
