"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF hook translating those exceptions into responses.
transactions       Row locking and guarded counter updates.
access             Permission-scoped queryset selectors and guards.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.transactions import lock_for_update, guarded_increment
    from core.domain.access import apply_permission_scope, require_permission
"""
