"""Error taxonomy for Wedding Event Planner.

- DraftValidationError: field-scoped, raised before anything reaches the store
- StoreError: generic failure reported by the event store
- NotFoundError: the record no longer exists server-side
- TransportError: network or server fault, safe for the user to retry
- StaleSelectionError: the local list no longer holds the selected id
"""

from typing import Dict, List, Optional


class EventPlannerError(Exception):
    """Base class for all planner errors."""


class DraftValidationError(EventPlannerError):
    """An event draft failed one or more field rules."""

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid event draft ({fields})")


class StoreError(EventPlannerError):
    """The event store rejected or failed a request."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(StoreError):
    """The event store has no record with the requested id."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found", status_code=404)


class TransportError(StoreError):
    """Network failure, timeout or server fault."""

    retryable = True


class StaleSelectionError(EventPlannerError):
    """A mutation targeted an id that is not in the local event list."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event {event_id} is not in the local list")
