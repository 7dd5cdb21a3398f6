"""
ORM-Level Immutability Enforcement for activity logs.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable          | Why
----------------|-------------------------|-----------------------------------
ActivityLog     | ALWAYS (from creation)  | Reports aggregate from raw logs;
                |                         | the ownership tag must never move

Corrections are new entries, never edits. Attendance entries are NOT
protected: a later write for the same (worker, year, month, period) key
updates the row in place.

===============================================================================
USAGE
===============================================================================

    from piecework_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from piecework_kernel.exceptions import ImmutabilityViolationError
from piecework_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_activity_log_immutability(mapper, connection, target):
    """Prevent any updates to activity log rows."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ActivityLog",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ActivityLog",
        entity_id=str(target.id),
        reason="Activity log entries are immutable and cannot be modified",
    )


def _check_activity_log_delete(mapper, connection, target):
    """Prevent deletion of activity log rows."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "ActivityLog",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="ActivityLog",
        entity_id=str(target.id),
        reason="Activity log entries cannot be deleted",
    )


def register_immutability_listeners():
    """Register the activity log listeners (idempotent)."""
    from piecework_modules.reports.orm import ActivityLogModel

    for event_name, listener_fn in (
        ("before_update", _check_activity_log_immutability),
        ("before_delete", _check_activity_log_delete),
    ):
        if not event.contains(ActivityLogModel, event_name, listener_fn):
            event.listen(ActivityLogModel, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the activity log listeners.

    WARNING: Only use this in tests.
    """
    from piecework_modules.reports.orm import ActivityLogModel

    _safe_remove_listener(ActivityLogModel, "before_update", _check_activity_log_immutability)
    _safe_remove_listener(ActivityLogModel, "before_delete", _check_activity_log_delete)
