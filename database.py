"""Database module for Wedding Event Planner.

This module defines SQLAlchemy models and database session management.
IMPORTANT: date is stored as a UTC DateTime object, NOT string.
"""

from sqlalchemy import (
    create_engine, Boolean, Column, DateTime, Enum as SQLEnum, Float, Index, Integer, JSON, String, Text,
)
from sqlalchemy.orm import declarative_base, sessionmaker
import enum

from config import settings

# SQLAlchemy Base
Base = declarative_base()


class CeremonyTypeEnum(enum.Enum):
    """Ceremony types offered"""
    CIVIL = "civil"
    RELIGIOUS = "religious"
    BOTH = "both"


class EventStatusEnum(enum.Enum):
    """Planning status values for events"""
    PLANNED = "planned"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WeddingEvent(Base):
    """Wedding event model - stores all event data.

    Reminder preferences are three independent boolean columns, exposed
    together through the `reminder_offsets` property.
    """

    __tablename__ = "events"

    # Primary Key
    id = Column(String, primary_key=True, doc="Unique event ID (UUID)")

    # Client
    client_label = Column(String(100), nullable=False, doc="Display name of the client / couple")
    partners_name = Column(String(100), default="", doc="Optional partner names")
    contact_phone = Column(String, nullable=False, doc="Contact phone number")

    # CRITICAL: DateTime object, NOT string!
    date = Column(
        DateTime(timezone=True),
        nullable=False,
        doc="When the event takes place (UTC)"
    )

    venue = Column(String(200), nullable=False, doc="Venue name or address")
    guest_count = Column(Integer, nullable=False, default=1, doc="Number of guests (1-1000)")
    budget = Column(Float, nullable=False, default=0, doc="Budget (>= 0)")
    notes = Column(Text, default="", doc="Free-form notes (max 1000 chars)")

    ceremony_type = Column(SQLEnum(CeremonyTypeEnum), default=CeremonyTypeEnum.CIVIL, doc="Ceremony type")
    status = Column(SQLEnum(EventStatusEnum), default=EventStatusEnum.PLANNED, index=True, doc="Planning status")

    # Reminder preferences
    remind_one_week = Column(Boolean, nullable=False, default=True)
    remind_three_days = Column(Boolean, nullable=False, default=True)
    remind_one_day = Column(Boolean, nullable=False, default=True)

    # Day schedule [{"time": "HH:MM", "event": str}] and booked services [str]
    timeline = Column(JSON, default=list, doc="Schedule of the wedding day")
    services = Column(JSON, default=list, doc="Booked services")

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, doc="When the event was created")
    updated_at = Column(DateTime(timezone=True), nullable=False, doc="When the event was last updated")

    __table_args__ = (
        Index('idx_event_date', 'date'),
        Index('idx_event_status_date', 'status', 'date'),
    )

    @property
    def reminder_offsets(self) -> dict:
        return {
            "one_week": self.remind_one_week,
            "three_days": self.remind_three_days,
            "one_day": self.remind_one_day,
        }

    def __repr__(self):
        """String representation"""
        return (
            f"<WeddingEvent(id={self.id}, client={self.client_label}, "
            f"date={self.date}, venue={self.venue}, status={self.status.value})>"
        )


# Database Engine Setup
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {},
    echo=False  # Set to True for SQL debugging
)

# Session Factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database session dependency for FastAPI.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Create all tables
Base.metadata.create_all(bind=engine)
