"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler in
``core.domain.exception_handler`` maps them to HTTP responses.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Exception           │ Meaning                      │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ business rule violated       │ 400  │
│ PermissionDenied    │ missing permission           │ 403  │
│ NotFound            │ missing / invisible resource │ 404  │
│ Conflict            │ clashes with current state   │ 409  │
│ InvalidTransition   │ illegal state-machine step   │ 409  │
│ LookupFailure       │ backing store unavailable    │ 503  │
└─────────────────────┴──────────────────────────────┴──────┘

``LookupFailure`` is **not** a ``DomainError``: it signals that a
collaborator (database, directory) failed, not that the caller asked for
something forbidden.  Callers must not treat it as a rejection.

App-specific subclasses live with their app, e.g.
``shifts.validators.ShiftRejected`` (a ``DomainError`` with a ``code``).

Usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if new_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransition(current=current_status, target=new_status)
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    ``code`` is an optional machine-readable identifier that the exception
    handler adds to the response body next to ``detail``.
    """

    code: str | None = None

    def __init__(
        self,
        message: str = "A business rule was violated.",
        *,
        code: str | None = None,
    ) -> None:
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role or permission
    for this operation.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user given their permission scope).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Example::

        raise InvalidTransition(
            current="completed",
            target="approved",
            reason="Completed shifts are final.",
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
            message = " ".join(parts) + "."
            if reason:
                message = f"{message} {reason}"
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class LookupFailure(Exception):
    """
    A lookup against a backing store (officer directory, shift store)
    failed for infrastructure reasons.

    Carries the underlying exception as ``__cause__``.  Maps to HTTP 503.
    """

    def __init__(self, source: str, message: str = "") -> None:
        self.source = source
        self.message = message or f"{source} lookup failed."
        super().__init__(self.message)
