"""Database models used by the application."""

import sqlite3
import uuid
from datetime import datetime, timezone

from flask_login import UserMixin
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.mutable import MutableDict, MutableList
from werkzeug.security import generate_password_hash, check_password_hash

from fusion import db


ROLE_MANAGER = "gestor"
ROLE_MEMBER = "membro"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    """Naive UTC timestamp, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite only enforces ON DELETE CASCADE and FK checks when asked to."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    profiles = db.relationship("Profile", back_populates="team", lazy="selectin")

    def __repr__(self):
        return f"<Team {self.name}>"


class Profile(db.Model, UserMixin):
    """Application user; the id is also the Flask-Login identifier."""

    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(180), unique=True, nullable=False)
    avatar_url = db.Column(db.String(500))
    role = db.Column(db.String(20), nullable=False, default=ROLE_MEMBER)
    team_id = db.Column(db.String(36), db.ForeignKey("teams.id", ondelete="SET NULL"))
    password_hash = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    team = db.relationship("Team", back_populates="profiles")

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<Profile {self.email}>"


class Task(db.Model):
    """A unit of work owned by one or more profiles."""

    __tablename__ = "tasks"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="pending")
    priority = db.Column(db.String(20), nullable=False, default="medium")
    due_date = db.Column(db.Date)
    team_id = db.Column(db.String(36), db.ForeignKey("teams.id", ondelete="SET NULL"))
    is_general = db.Column(db.Boolean, nullable=False, default=False)
    created_by = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False, index=True)

    owner_links = db.relationship(
        "TaskOwner",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    messages = db.relationship(
        "TaskMessage",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskMessage.created_at.asc()",
        lazy="selectin",
    )
    notifications = db.relationship(
        "Notification",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def owners(self):
        return [link.profile for link in self.owner_links if link.profile is not None]

    def __repr__(self):
        return f"<Task {self.name}>"


class TaskOwner(db.Model):
    __tablename__ = "task_owners"

    task_id = db.Column(
        db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )

    task = db.relationship("Task", back_populates="owner_links")
    profile = db.relationship("Profile", lazy="selectin")


class TaskMessage(db.Model):
    """Immutable chat entry attached to a task."""

    __tablename__ = "task_messages"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    task_id = db.Column(
        db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"))
    content = db.Column(db.Text, nullable=False, default="")
    type = db.Column(db.String(10), nullable=False, default="text")
    media_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    task = db.relationship("Task", back_populates="messages")


class Room(db.Model):
    """Bookable clinic room."""

    __tablename__ = "rooms"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    neighborhood = db.Column(db.String(120), nullable=False, default="", index=True)
    address = db.Column(db.String(255), nullable=False, default="")
    reference_point = db.Column(db.String(255))
    size = db.Column(db.Float, nullable=False, default=0)
    images = db.Column(MutableList.as_mutable(db.JSON), nullable=False, default=list)
    modalities = db.Column(MutableList.as_mutable(db.JSON), nullable=False, default=list)
    specialties = db.Column(MutableList.as_mutable(db.JSON), nullable=False, default=list)
    amenities = db.Column(MutableList.as_mutable(db.JSON), nullable=False, default=list)
    equipment = db.Column(MutableList.as_mutable(db.JSON), nullable=False, default=list)
    price_per_hour = db.Column(db.Float)
    price_per_shift = db.Column(db.Float)
    price_fixed = db.Column(db.Float)
    night_shift_available = db.Column(db.Boolean, nullable=False, default=False)
    weekend_available = db.Column(db.Boolean, nullable=False, default=False)
    host_info = db.Column(MutableDict.as_mutable(db.JSON))
    manager_info = db.Column(MutableDict.as_mutable(db.JSON))
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Room {self.name}>"


class Notification(db.Model):
    """Inbox entry; ``read`` only ever moves from False to True."""

    __tablename__ = "notifications"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_user_id = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"))
    task_id = db.Column(db.String(36), db.ForeignKey("tasks.id", ondelete="CASCADE"))
    type = db.Column(db.String(20), nullable=False)
    content = db.Column(db.Text, nullable=False, default="")
    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False, index=True)

    task = db.relationship("Task", back_populates="notifications", lazy="selectin")
    from_user = db.relationship("Profile", foreign_keys=[from_user_id], lazy="selectin")


class CalendarEvent(db.Model):
    __tablename__ = "calendar_events"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    title = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="reuniao")
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5))
    end_time = db.Column(db.String(5))
    description = db.Column(db.Text)
    location = db.Column(db.String(255))
    team_id = db.Column(db.String(36), db.ForeignKey("teams.id", ondelete="SET NULL"))
    is_general = db.Column(db.Boolean, nullable=False, default=False)
    created_by = db.Column(db.String(36), db.ForeignKey("profiles.id", ondelete="SET NULL"))
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)

    creator = db.relationship("Profile", foreign_keys=[created_by], lazy="selectin")
    participant_links = db.relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def participants(self):
        return [link.profile for link in self.participant_links if link.profile is not None]


class EventParticipant(db.Model):
    __tablename__ = "event_participants"

    event_id = db.Column(
        db.String(36), db.ForeignKey("calendar_events.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )

    event = db.relationship("CalendarEvent", back_populates="participant_links")
    profile = db.relationship("Profile", lazy="selectin")
