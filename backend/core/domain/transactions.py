"""
core.domain.transactions — Helpers for concurrency-safe state changes.

Two patterns cover every write path in the service layers:

* **Row lock, then decide** — ``lock_for_update`` re-reads a row with
  ``select_for_update()`` so that lifecycle guards (``status``, assigned
  volunteer, …) are evaluated against the committed value and no other
  transaction can interleave until commit.

* **Guarded counter update** — ``guarded_increment`` pushes the
  arithmetic into a single ``UPDATE … SET col = col + x WHERE …``
  statement.  Concurrent increments can never be lost, and the
  ``WHERE`` clause re-checks the precondition atomically.

Usage::

    from django.db import transaction
    from core.domain.transactions import guarded_increment, lock_for_update

    with transaction.atomic():
        case = lock_for_update(Case, case_id)
        ...

    updated = guarded_increment(
        Case, pk=case.pk, field="total_donations", amount=amount,
        filters={"status": CaseStatus.ACCEPTED},
    )
"""

from __future__ import annotations

from typing import Any, TypeVar

from django.db import models
from django.db.models import F

from core.domain.exceptions import NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(model_class: type[M], pk: Any, *, label: str | None = None) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.
        label:       Human-readable entity name for the error message.
                     Defaults to the model class name.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{label or model_class.__name__} with id {pk} does not exist.")


def guarded_increment(
    model_class: type[models.Model],
    *,
    pk: Any,
    field: str,
    amount: Any,
    filters: dict[str, Any] | None = None,
) -> int:
    """
    Atomically add ``amount`` to ``field`` on a single row.

    The update is issued as one SQL statement with an ``F()`` expression,
    so two transactions incrementing the same row serialise on the row
    lock the database takes for the ``UPDATE`` and both contributions
    survive.

    Args:
        model_class: The Django model class.
        pk:          Primary key of the row to update.
        field:       Numeric column to increment.
        amount:      Value to add (may be ``Decimal``).
        filters:     Extra ``WHERE`` conditions that must still hold at
                     update time (e.g. ``{"status": "accepted"}``).

    Returns:
        Number of rows updated: ``1`` on success, ``0`` when the row is
        missing or no longer satisfies ``filters``.
    """
    return (
        model_class.objects
        .filter(pk=pk, **(filters or {}))
        .update(**{field: F(field) + amount})
    )
