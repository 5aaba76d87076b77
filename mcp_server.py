"""MCP Server for Wedding Event Planner.

This module provides MCP tools for AI agents to manage wedding events and see
upcoming reminders. Uses the same database as the REST API.

Tools receive ISO datetime strings; drafts go through the same validation gate
as the REST API.

Transport Support:
- stdio: Standard input/output (local process communication)
- sse: Server-Sent Events over HTTP (network access)
"""

import os
from datetime import datetime, timezone
from typing import List

from mcp.server.fastmcp import FastMCP

import crud
import database
import schemas
from config import settings
from logger_config import setup_logger
from scheduler import compute_due_reminders
from validation import validate_draft, validate_patch

logger = setup_logger(__name__, 'mcp.log')
logger.info("MCP Server initialized")

# Create FastMCP server with host and port from settings
mcp = FastMCP(
    "WeddingEventPlanner",
    host=settings.MCP_HOST,
    port=settings.MCP_PORT
)

_OFFSET_LABELS = {
    schemas.OffsetKind.ONE_WEEK: "1 week before",
    schemas.OffsetKind.THREE_DAYS: "3 days before",
    schemas.OffsetKind.ONE_DAY: "1 day before",
}


def _format_errors(errors: dict) -> str:
    return "\n".join(f"  {field}: {'; '.join(messages)}" for field, messages in sorted(errors.items()))


@mcp.tool()
def create_event(
    client_label: str,
    date: str,
    venue: str,
    contact_phone: str,
    guest_count: int = 1,
    budget: float = 0,
    notes: str = "",
    partners_name: str = "",
    ceremony_type: str = "civil",
    remind_one_week: bool = True,
    remind_three_days: bool = True,
    remind_one_day: bool = True,
    services: List[str] = None
) -> str:
    """Create a new wedding event.

    Args:
        client_label: Display name of the client / couple
        date: When the event takes place - ISO format (e.g., "2025-06-14T15:00:00+02:00")
        venue: Venue name or address
        contact_phone: Contact phone number
        guest_count: Number of guests (1-1000)
        budget: Budget (>= 0)
        notes: Optional notes (max 1000 chars)
        partners_name: Optional partner names
        ceremony_type: "civil", "religious", or "both"
        remind_one_week / remind_three_days / remind_one_day: reminder flags
        services: Optional booked services (e.g., ["catering", "photography"])

    Returns:
        Success message with event ID, or the validation errors
    """
    draft = {
        "client_label": client_label,
        "date": date,
        "venue": venue,
        "contact_phone": contact_phone,
        "guest_count": guest_count,
        "budget": budget,
        "notes": notes,
        "partners_name": partners_name,
        "ceremony_type": ceremony_type,
        "services": services,
        "reminder_offsets": {
            "one_week": remind_one_week,
            "three_days": remind_three_days,
            "one_day": remind_one_day,
        },
    }
    result = validate_draft(draft, now=datetime.now(timezone.utc))
    if not result.ok:
        return f"✗ Event not created, invalid fields:\n{_format_errors(result.errors)}"

    db = database.SessionLocal()
    try:
        event = crud.create_event(db, result.value.model_dump())
        return (
            f"✓ Event created successfully!\n"
            f"ID: {event.id}\n"
            f"Client: {event.client_label}\n"
            f"Date: {schemas.EventResponse.model_validate(event).date.isoformat()}\n"
            f"Venue: {event.venue}"
        )
    except Exception as e:
        logger.error(f"Error creating event: {str(e)}")
        return f"✗ Error creating event: {str(e)}"
    finally:
        db.close()


@mcp.tool()
def list_events(status: str = None, limit: int = 50) -> str:
    """List wedding events, soonest first.

    Args:
        status: Optional status filter - "planned", "confirmed", "completed", or "cancelled"
        limit: Maximum number of results (default: 50)

    Returns:
        Formatted list of events or message if none found
    """
    db = database.SessionLocal()
    try:
        limit = min(limit, settings.MAX_EVENTS_LIST)
        events = crud.list_events(db, status, limit)

        if not events:
            filter_text = f" with status '{status}'" if status else ""
            return f"No events found{filter_text}."

        result = [f"Found {len(events)} event(s):\n"]
        for e in events:
            event = schemas.EventResponse.model_validate(e)
            result.append(
                f"\n• [{event.status.upper()}] {event.client_label}\n"
                f"  ID: {event.id}\n"
                f"  Date: {event.date.strftime('%Y-%m-%d %H:%M %Z')}\n"
                f"  Venue: {event.venue}\n"
                f"  Guests: {event.guest_count}"
            )
        return "\n".join(result)
    finally:
        db.close()


@mcp.tool()
def get_event(event_id: str) -> str:
    """Get detailed information about a specific event.

    Args:
        event_id: Event UUID

    Returns:
        Detailed event information or error message
    """
    db = database.SessionLocal()
    try:
        row = crud.get_event(db, event_id)
        if not row:
            return "✗ Event not found."

        event = schemas.EventResponse.model_validate(row)
        enabled = [kind.value for kind in schemas.OffsetKind if event.reminder_offsets.enabled(kind)]
        timeline = "\n".join(f"  {entry.time}  {entry.event}" for entry in event.timeline)
        return (
            f"Event Details:\n"
            f"━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━\n"
            f"ID: {event.id}\n"
            f"Client: {event.client_label}\n"
            f"Partners: {event.partners_name or 'N/A'}\n"
            f"Date: {event.date.isoformat()}\n"
            f"Venue: {event.venue}\n"
            f"Phone: {event.contact_phone}\n"
            f"Guests: {event.guest_count}\n"
            f"Budget: {event.budget:.2f}\n"
            f"Ceremony: {event.ceremony_type}\n"
            f"Status: {event.status}\n"
            f"Reminders: {', '.join(enabled) or 'none'}\n"
            f"Services: {', '.join(event.services) or 'none'}\n"
            f"Timeline:\n{timeline or '  (empty)'}\n"
            f"Notes: {event.notes or 'N/A'}"
        )
    finally:
        db.close()


@mcp.tool()
def update_event(
    event_id: str,
    client_label: str = None,
    date: str = None,
    venue: str = None,
    contact_phone: str = None,
    guest_count: int = None,
    budget: float = None,
    notes: str = None,
    status: str = None,
    remind_one_week: bool = None,
    remind_three_days: bool = None,
    remind_one_day: bool = None
) -> str:
    """Update an existing event. Only provided values change.

    Args:
        event_id: Event UUID
        date: Optional new date - ISO format
        status: Optional new status - "planned", "confirmed", "completed", or "cancelled"
        remind_*: Optional reminder flags

    Returns:
        Success message with updated details or error message
    """
    patch = {
        key: value for key, value in {
            "client_label": client_label,
            "date": date,
            "venue": venue,
            "contact_phone": contact_phone,
            "guest_count": guest_count,
            "budget": budget,
            "notes": notes,
            "status": status,
        }.items() if value is not None
    }
    offsets = {
        key: value for key, value in {
            "one_week": remind_one_week,
            "three_days": remind_three_days,
            "one_day": remind_one_day,
        }.items() if value is not None
    }
    if offsets:
        patch["reminder_offsets"] = offsets

    result = validate_patch(patch)
    if not result.ok:
        return f"✗ Event not updated, invalid fields:\n{_format_errors(result.errors)}"

    db = database.SessionLocal()
    try:
        row = crud.update_event(db, event_id, result.value.model_dump(exclude_unset=True))
        if not row:
            return "✗ Event not found."
        event = schemas.EventResponse.model_validate(row)
        return (
            f"✓ Event updated successfully!\n"
            f"ID: {event.id}\n"
            f"Client: {event.client_label}\n"
            f"Date: {event.date.isoformat()}\n"
            f"Status: {event.status}"
        )
    except Exception as e:
        logger.error(f"Error updating event {event_id}: {str(e)}")
        return f"✗ Error updating event: {str(e)}"
    finally:
        db.close()


@mcp.tool()
def delete_event(event_id: str) -> str:
    """Delete an event.

    Args:
        event_id: Event UUID

    Returns:
        Success or error message
    """
    db = database.SessionLocal()
    try:
        if crud.delete_event(db, event_id):
            return f"✓ Event {event_id} deleted successfully."
        return "✗ Event not found."
    finally:
        db.close()


@mcp.tool()
def upcoming_reminders(limit: int = 20) -> str:
    """List reminders that are still ahead, soonest first.

    Args:
        limit: Maximum number of reminders (default: 20)

    Returns:
        Formatted reminder schedule or message if none are pending
    """
    db = database.SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        events = {e.id: schemas.EventResponse.model_validate(e) for e in crud.list_upcoming_events(db, now)}
        reminders = compute_due_reminders(now, events.values(), settings.TIMEZONE)[:limit]

        if not reminders:
            return "No upcoming reminders. ✓"

        result = [f"⏰ {len(reminders)} upcoming reminder(s):\n"]
        for r in reminders:
            event = events[r.event_id]
            result.append(
                f"\n• {r.notify_at.strftime('%Y-%m-%d %H:%M %Z')} - {event.client_label}\n"
                f"  {_OFFSET_LABELS[r.offset_kind]} the event on {event.date.strftime('%Y-%m-%d %H:%M')}\n"
                f"  Venue: {event.venue}"
            )
        return "\n".join(result)
    finally:
        db.close()


if __name__ == "__main__":
    # Get transport from environment or config
    transport = os.getenv("MCP_TRANSPORT", settings.MCP_TRANSPORT).lower()

    if transport == "sse":
        host = settings.MCP_HOST
        port = settings.MCP_PORT

        print(f"Starting MCP server with SSE transport on {host}:{port}")
        print(f"SSE endpoint: http://{host}:{port}/sse")

        mcp.run(transport="sse")
    else:
        print("Starting MCP server with stdio transport")
        mcp.run(transport="stdio")
