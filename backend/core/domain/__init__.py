"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
notifications  Notification rendering and persistence.
tasks          Notification work queue (producer + worker).
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.
access         Permission-scoped queryset selectors.
audit          ``audited`` decorator writing the audit trail.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.tasks import enqueue_notification
    from core.domain.transactions import atomic_transition
    from core.domain.access import apply_permission_scope
"""
