"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the services stay
framework-agnostic and callable from management commands and tests.
``core.domain.exception_handler`` maps them onto HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception    │ Meaning                      │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ Input failed validation      │ 400  │
│ PermissionDenied    │ Caller lacks the permission  │ 403  │
│ NotFound            │ Referenced entity is missing │ 404  │
│ Conflict            │ Clashes with current state   │ 409  │
│ InvalidTransition   │ Illegal lifecycle move       │ 409  │
└─────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if case.status != CaseStatus.PENDING:
        raise InvalidTransition(
            current=case.status,
            target="volunteer_pending",
            reason="Only pending cases can receive a volunteer.",
        )
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Raised directly for malformed or out-of-range input (non-positive
    amounts, unknown rejection reasons, missing disease details).
    Maps to HTTP 400.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The authenticated user does not hold the permission required for
    this operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested case, user or donation does not exist (or is not
    visible to the requesting user given their scope).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: duplicate registration, a verdict from a volunteer who
    is not assigned to the case, a donation to a case that stopped
    accepting funds.  Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A lifecycle transition that is not allowed from the current state.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="admin_accepted",
            target="admin_rejected",
            reason="Accepted cases may already hold donations.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            message = " ".join(parts)
            if reason:
                message += f": {reason}"
            if not message.endswith("."):
                message += "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason
