# models.py — Database models for Kanban Hub
# - UUID string primary keys everywhere
# - Companies are the tenant boundary
# - Boards own ordered columns, columns own ordered cards
# - TransferLog is an append-only audit trail of cross-container moves

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Boolean, Integer,
    Enum as SQLEnum, ForeignKey, Text, Index, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, PyEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class CardStatus(str, PyEnum):
    NEW = "novo"
    IN_PROGRESS = "em_progresso"
    BLOCKED = "bloqueado"
    DONE = "concluido"


class CardPriority(str, PyEnum):
    LOW = "baixa"
    MEDIUM = "media"
    HIGH = "alta"
    URGENT = "urgente"


class TransferType(str, PyEnum):
    OWNERSHIP_TRANSFER = "ownership_transfer"
    BOARD_MOVE = "board_move"
    CARD_MOVE = "card_move"
    CARD_CLONE = "card_clone"


class NotificationType(str, PyEnum):
    ASSIGNED = "assigned"
    MENTION = "mention"
    TRANSFER = "transfer"
    CARD_OVERDUE = "card_overdue"
    CARD_DUE_TODAY = "card_due_today"
    CARD_DUE_TOMORROW = "card_due_tomorrow"


class NotificationPriority(str, PyEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


# ============================================================
# COMPANIES (tenants)
# ============================================================

class Company(Base):
    __tablename__ = "companies"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    users = relationship("User", back_populates="company")
    groups = relationship("Group", back_populates="company")


class Group(Base):
    __tablename__ = "groups"

    id = Column(String, primary_key=True, default=new_uuid)
    company_id = Column(String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    company = relationship("Company", back_populates="groups")


# ============================================================
# USERS
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    display_name = Column(String, nullable=False, default="")
    password_hash = Column(String, nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False, index=True)
    company_id = Column(String, ForeignKey("companies.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    company = relationship("Company", back_populates="users")

    __table_args__ = (
        Index("idx_user_company_active", "company_id", "is_active"),
    )


# ============================================================
# PROJECTS
# ============================================================

class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("companies.id"), nullable=True, index=True)
    group_id = Column(String, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", foreign_keys=[owner_id])
    boards = relationship("Board", back_populates="project")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")


class ProjectMember(Base):
    """Grants a user access to a project without ownership"""
    __tablename__ = "project_members"

    id = Column(String, primary_key=True, default=new_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    project = relationship("Project", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member"),
    )


# ============================================================
# KANBAN BOARD
# ============================================================

class Board(Base):
    __tablename__ = "boards"

    id = Column(String, primary_key=True, default=new_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    project = relationship("Project", back_populates="boards")
    columns = relationship("BoardColumn", back_populates="board", order_by="BoardColumn.position")
    cards = relationship("Card", back_populates="board")


class BoardColumn(Base):
    """Column in a board; `position` is the left-to-right order"""
    __tablename__ = "board_columns"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    color = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    board = relationship("Board", back_populates="columns")
    cards = relationship("Card", back_populates="column", order_by="Card.position")

    # Not unique: renumbering passes through transient duplicates inside one transaction
    __table_args__ = (
        Index("idx_col_board_pos", "board_id", "position"),
    )


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String, primary_key=True, default=new_uuid)
    company_id = Column(String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String, nullable=False)
    color = Column(String, default="#6366f1")
    created_at = Column(DateTime(timezone=True), default=utcnow)


class CardTag(Base):
    __tablename__ = "card_tags"

    card_id = Column(String, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(String, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    tag = relationship("Tag")


class Card(Base):
    """Card on a board; `position` is the top-to-bottom order within its column"""
    __tablename__ = "cards"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    column_id = Column(String, ForeignKey("board_columns.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(CardStatus), default=CardStatus.NEW, nullable=False)
    priority = Column(SQLEnum(CardPriority), default=CardPriority.MEDIUM, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    reporter_id = Column(String, ForeignKey("users.id"), nullable=True)
    assigned_user_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    board = relationship("Board", back_populates="cards")
    column = relationship("BoardColumn", back_populates="cards")
    reporter = relationship("User", foreign_keys=[reporter_id])
    assignee = relationship("User", foreign_keys=[assigned_user_id])
    tags = relationship("CardTag", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_card_column_pos", "column_id", "position"),
        Index("idx_card_board_col", "board_id", "column_id"),
    )


# ============================================================
# TRANSFER LOG (append-only)
# ============================================================

class TransferLog(Base):
    """Immutable record of a cross-container relocation.

    Titles are denormalized snapshots so the history stays readable after the
    referenced entities are renamed or deleted.
    """
    __tablename__ = "transfer_logs"

    id = Column(String, primary_key=True, default=new_uuid)
    type = Column(SQLEnum(TransferType), nullable=False, index=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    entity_title = Column(String, nullable=True)
    from_type = Column(String, nullable=False)
    from_id = Column(String, nullable=False)
    from_title = Column(String, nullable=True)
    to_type = Column(String, nullable=False)
    to_id = Column(String, nullable=False)
    to_title = Column(String, nullable=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    __table_args__ = (
        Index("idx_transfer_entity", "entity_type", "entity_id"),
        Index("idx_transfer_user_time", "user_id", "created_at"),
    )


# ============================================================
# NOTIFICATIONS
# ============================================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=new_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    ref_type = Column(String, nullable=True)
    ref_id = Column(String, nullable=True)
    priority = Column(SQLEnum(NotificationPriority), default=NotificationPriority.NORMAL)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    __table_args__ = (
        Index("idx_notification_ref", "user_id", "ref_type", "ref_id"),
    )


# ============================================================
# COLLABORATORS (HR import target)
# ============================================================

class Collaborator(Base):
    __tablename__ = "collaborators"

    id = Column(String, primary_key=True, default=new_uuid)
    company_id = Column(String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    cpf = Column(String, nullable=True)
    pis = Column(String, nullable=True)
    employee_id = Column(String, nullable=True)
    status = Column(String, default="Ativo")
    role = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_collaborator_company_email"),
    )
