"""FastAPI REST API server for Wedding Event Planner.

This module provides the CRUD HTTP endpoints backing the event store client,
plus an upcoming-reminders view computed on demand.

Create runs the validation gate with the server clock; a rejected draft comes
back as 422 with every field error at once.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import crud
import database
import schemas
from config import settings
from logger_config import setup_logger
from scheduler import compute_due_reminders, next_reminder
from validation import validate_draft, validate_patch

logger = setup_logger(__name__, 'api.log')

# Create FastAPI application
app = FastAPI(
    title="Wedding Event Planner API",
    description="Wedding event records with computed reminder schedules",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_failed(errors: Dict[str, List[str]]) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": "Event validation failed", "errors": errors}
    )


@app.get("/")
def root():
    """Root endpoint - service information"""
    return {
        "service": "Wedding Event Planner API",
        "version": "1.0.0",
        "status": "healthy",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "events": "/events",
            "reminders": "/reminders/upcoming"
        }
    }


@app.get("/health")
def health_check(db: Session = Depends(database.get_db)):
    """Health check endpoint, including a database round trip"""
    try:
        db.execute(text("SELECT 1"))
        database_status = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}")
        raise HTTPException(status_code=503, detail="Database not reachable")
    return {
        "status": "healthy",
        "service": "wedding_event_planner",
        "database": settings.DATABASE_URL.split("://")[0],
        "database_status": database_status
    }


@app.post("/events", response_model=schemas.EventResponse, status_code=201)
def create_event(
    draft: Dict[str, Any] = Body(...),
    db: Session = Depends(database.get_db)
):
    """Create a new event.

    Request body example:
    ```json
    {
        "client_label": "Claire & Louis",
        "date": "2025-06-14",
        "time": "15:00",
        "venue": "Domaine des Oliviers",
        "contact_phone": "+33612345678",
        "guest_count": 120,
        "reminder_offsets": {"one_day": false}
    }
    ```
    """
    result = validate_draft(draft, now=datetime.now(timezone.utc))
    if not result.ok:
        logger.info(f"Rejected event draft: {result.errors}")
        raise _validation_failed(result.errors)
    try:
        return crud.create_event(db, result.value.model_dump())
    except SQLAlchemyError as e:
        logger.error(f"Error creating event: {str(e)}")
        raise HTTPException(status_code=400, detail=f"Error creating event: {str(e)}")


@app.get("/events", response_model=List[schemas.EventResponse])
def list_events(
    status: Optional[str] = Query(None, pattern=schemas.STATUS_PATTERN, description="Filter by status"),
    limit: int = Query(1000, ge=1, le=settings.MAX_EVENTS_LIST, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of events to skip"),
    db: Session = Depends(database.get_db)
):
    """List events, soonest first. Page with limit and offset."""
    return crud.list_events(db, status, limit, offset)


@app.get("/events/search", response_model=List[schemas.EventResponse])
def search_events(
    query: str = Query(..., min_length=1, description="Search query"),
    db: Session = Depends(database.get_db)
):
    """Search events by client label, partner names or venue."""
    return crud.search_events(db, query)


@app.get("/events/stats")
def get_event_stats(db: Session = Depends(database.get_db)):
    """Counts by status plus the number of upcoming reminders."""
    by_status = crud.count_events_by_status(db)
    now = datetime.now(timezone.utc)
    events = [schemas.EventResponse.model_validate(e) for e in crud.list_upcoming_events(db, now)]
    upcoming = compute_due_reminders(now, events, settings.TIMEZONE)
    first = next_reminder(now, events, settings.TIMEZONE)
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "upcoming_reminders": len(upcoming),
        "next_reminder": first.model_dump(mode="json") if first else None
    }


@app.get("/events/{event_id}", response_model=schemas.EventResponse)
def get_event(event_id: str, db: Session = Depends(database.get_db)):
    """Get a specific event by ID."""
    event = crud.get_event(db, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@app.put("/events/{event_id}", response_model=schemas.EventResponse)
def update_event(
    event_id: str,
    patch: Dict[str, Any] = Body(...),
    db: Session = Depends(database.get_db)
):
    """Update an existing event. Only provided fields are changed.

    Request body example:
    ```json
    {
        "guest_count": 140,
        "status": "confirmed",
        "reminder_offsets": {"one_week": false}
    }
    ```
    """
    result = validate_patch(patch)
    if not result.ok:
        raise _validation_failed(result.errors)
    try:
        event = crud.update_event(db, event_id, result.value.model_dump(exclude_unset=True))
    except SQLAlchemyError as e:
        logger.error(f"Error updating event {event_id}: {str(e)}")
        raise HTTPException(status_code=400, detail=f"Error updating event: {str(e)}")
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@app.delete("/events/{event_id}", status_code=200)
def delete_event(event_id: str, db: Session = Depends(database.get_db)):
    """Delete an event."""
    if not crud.delete_event(db, event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return {"message": "Event deleted successfully", "event_id": event_id}


@app.get("/reminders/upcoming", response_model=List[schemas.ReminderInstance])
def upcoming_reminders(
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of reminders"),
    db: Session = Depends(database.get_db)
):
    """Reminders still ahead of now, soonest first.

    Computed from the stored events on every call; nothing is persisted.
    """
    now = datetime.now(timezone.utc)
    events = [schemas.EventResponse.model_validate(e) for e in crud.list_upcoming_events(db, now)]
    return compute_due_reminders(now, events, settings.TIMEZONE)[:limit]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
