"""Check-then-create combinator shared by the registry and import stages."""

from __future__ import annotations

from collections.abc import Callable

from ._models import EnsureOutcome


def ensure_idempotent(
    check: Callable[[], bool],
    create: Callable[[], object],
) -> EnsureOutcome:
    """Run ``create`` only when ``check`` reports the target as absent.

    Errors raised by ``create`` propagate; callers decide whether they are
    fatal.

    Examples
    --------
    >>> created = []
    >>> ensure_idempotent(lambda: True, lambda: created.append("x"))
    <EnsureOutcome.EXISTED: 'existed'>
    >>> ensure_idempotent(lambda: False, lambda: created.append("x"))
    <EnsureOutcome.CREATED: 'created'>
    >>> created
    ['x']
    """

    if check():
        return EnsureOutcome.EXISTED
    create()
    return EnsureOutcome.CREATED


__all__ = ["ensure_idempotent"]
