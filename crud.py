"""CRUD operations for Wedding Event Planner.

This module provides database operations for wedding events.
IMPORTANT: All date parameters and return values are datetime objects, NOT strings.
"""

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
import uuid
from datetime import datetime, timezone

from database import WeddingEvent, CeremonyTypeEnum, EventStatusEnum
from logger_config import setup_logger

logger = setup_logger(__name__, 'crud.log')

_OFFSET_COLUMNS = {
    'one_week': 'remind_one_week',
    'three_days': 'remind_three_days',
    'one_day': 'remind_one_day',
}


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def create_event(db: Session, event_data: dict) -> WeddingEvent:
    """Create a new event in the database.

    Args:
        db: Database session
        event_data: Dictionary with normalized draft fields (see schemas.EventCreate)
            - date: datetime (MUST be datetime object!)
            - reminder_offsets: dict of one_week / three_days / one_day flags

    Returns:
        WeddingEvent: Created event with a newly assigned id

    Raises:
        SQLAlchemyError: On database errors
    """
    event_id = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    offsets = event_data.get('reminder_offsets') or {}

    db_event = WeddingEvent(
        id=event_id,
        client_label=event_data['client_label'],
        partners_name=event_data.get('partners_name') or '',
        contact_phone=event_data['contact_phone'],
        date=_utc(event_data['date']),
        venue=event_data['venue'],
        guest_count=event_data.get('guest_count', 1),
        budget=event_data.get('budget', 0),
        notes=event_data.get('notes') or '',
        ceremony_type=CeremonyTypeEnum(event_data.get('ceremony_type', 'civil')),
        status=EventStatusEnum(event_data.get('status', 'planned')),
        remind_one_week=offsets.get('one_week', True),
        remind_three_days=offsets.get('three_days', True),
        remind_one_day=offsets.get('one_day', True),
        timeline=event_data.get('timeline') or [],
        services=event_data.get('services') or [],
        created_at=now,
        updated_at=now
    )

    db.add(db_event)
    db.commit()
    db.refresh(db_event)
    logger.info(f"Created event {event_id} for '{db_event.client_label}' on {db_event.date}")
    return db_event


def list_events(
    db: Session,
    status: Optional[str] = None,
    limit: int = 1000,
    offset: int = 0
) -> List[WeddingEvent]:
    """List events ordered by date ascending.

    Args:
        db: Database session
        status: Optional status filter (planned, confirmed, completed, cancelled)
        limit: Maximum number of results
        offset: Number of events to skip (paging)

    Returns:
        List[WeddingEvent]: Events, soonest first
    """
    query = db.query(WeddingEvent)

    if status:
        query = query.filter(WeddingEvent.status == EventStatusEnum(status))

    return query.order_by(WeddingEvent.date.asc(), WeddingEvent.id).offset(offset).limit(limit).all()


def list_upcoming_events(db: Session, now: datetime) -> List[WeddingEvent]:
    """All events strictly after `now`, soonest first. Not capped.

    Only these can still produce a reminder.
    """
    return db.query(WeddingEvent).filter(
        WeddingEvent.date > _utc(now)
    ).order_by(WeddingEvent.date.asc(), WeddingEvent.id).all()


def get_event(db: Session, event_id: str) -> Optional[WeddingEvent]:
    """Get a specific event by ID, or None if it does not exist."""
    return db.query(WeddingEvent).filter(WeddingEvent.id == event_id).first()


def update_event(db: Session, event_id: str, updates: dict) -> Optional[WeddingEvent]:
    """Update an existing event.

    Args:
        db: Database session
        event_id: Event UUID
        updates: Dictionary of fields to update; None values are ignored.
            reminder_offsets may hold any subset of the three flags.

    Returns:
        Optional[WeddingEvent]: Updated event if found, None otherwise

    Raises:
        SQLAlchemyError: On database errors
    """
    event = get_event(db, event_id)
    if not event:
        return None

    for key, value in updates.items():
        if value is None:
            continue
        if key == 'reminder_offsets':
            for flag, flag_value in value.items():
                if flag_value is not None and flag in _OFFSET_COLUMNS:
                    setattr(event, _OFFSET_COLUMNS[flag], bool(flag_value))
            continue
        if key == 'ceremony_type':
            value = CeremonyTypeEnum(value)
        elif key == 'status':
            value = EventStatusEnum(value)
        elif key == 'date':
            value = _utc(value)
        setattr(event, key, value)

    event.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(event)
    logger.info(f"Updated event {event_id}: {sorted(k for k, v in updates.items() if v is not None)}")
    return event


def delete_event(db: Session, event_id: str) -> bool:
    """Delete an event.

    Returns:
        bool: True if deleted, False if not found
    """
    event = get_event(db, event_id)
    if not event:
        return False

    db.delete(event)
    db.commit()
    logger.info(f"Deleted event {event_id}")
    return True


def search_events(db: Session, query: str, limit: int = 1000) -> List[WeddingEvent]:
    """Search events by client label, partner names or venue."""
    search_pattern = f"%{query}%"
    return db.query(WeddingEvent).filter(
        or_(
            WeddingEvent.client_label.like(search_pattern),
            WeddingEvent.partners_name.like(search_pattern),
            WeddingEvent.venue.like(search_pattern),
        )
    ).order_by(WeddingEvent.date.asc()).limit(limit).all()


def count_events_by_status(db: Session) -> Dict[str, int]:
    """Count events per status value (every status is present, possibly 0)."""
    counts = {status.value: 0 for status in EventStatusEnum}
    rows = db.query(WeddingEvent.status, func.count(WeddingEvent.id)).group_by(WeddingEvent.status).all()
    for status, count in rows:
        counts[status.value] = count
    return counts
