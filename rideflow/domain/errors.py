"""
Workflow error taxonomy.

Every failure is raised synchronously to the caller with a human-readable
``detail``.  The API layer maps each kind to an HTTP status code.
"""

from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """Base class for every error the workflow engine raises."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(WorkflowError):
    """Malformed or missing input."""


class UnauthorizedError(WorkflowError):
    """Actor role or ownership does not permit the operation."""


class NotFoundError(WorkflowError):
    """Unknown ride id."""


class StorageError(WorkflowError):
    """The ride store failed or is unreachable."""


class InvalidTransitionError(WorkflowError):
    """The (actor role, ride status) pair has no row in the transition table."""

    def __init__(
        self,
        actor_role: Optional[str],
        current_status: Optional[str],
        detail: Optional[str] = None,
    ):
        self.actor_role = _plain(actor_role)
        self.current_status = _plain(current_status)
        super().__init__(
            detail
            or f"Cannot transition ride. Role: {self.actor_role}, "
            f"Status: {self.current_status}"
        )


def _plain(value) -> Optional[str]:
    return getattr(value, "value", value)
