"""
Overlap policy between schedule types.

availability never conflicts with anything, appointment and blocked conflict
with each other and themselves, custom never conflicts through the policy.
A custom schedule only takes part in overlap checks when the no-overlap rule
names it explicitly (see opted_in_collides).
"""

from typing import Iterable, Optional, Union

from ..core.enums import ScheduleType

TypeLike = Union[ScheduleType, str]

_EXCLUSIVE = frozenset({ScheduleType.APPOINTMENT, ScheduleType.BLOCKED})


def _coerce(value: TypeLike) -> Optional[ScheduleType]:
    try:
        return ScheduleType(value)
    except ValueError:
        return None


def conflicts(type_a: TypeLike, type_b: TypeLike) -> bool:
    """Symmetric "must not overlap" test for a pair of schedule types."""
    a = _coerce(type_a)
    b = _coerce(type_b)
    return a in _EXCLUSIVE and b in _EXCLUSIVE


def applies_to(candidate_type: TypeLike, applies_to_types: Iterable[TypeLike]) -> bool:
    """Whether the no-overlap rule is configured to check this candidate type."""
    candidate = _coerce(candidate_type)
    if candidate is None or candidate is ScheduleType.AVAILABILITY:
        return False
    return candidate in {_coerce(t) for t in applies_to_types}


def opted_in_collides(candidate_type: TypeLike, existing_type: TypeLike) -> bool:
    """
    Collision test for a candidate that passed the applies_to gate.

    An explicitly opted-in custom candidate collides with every schedule
    except availability; every other type follows the symmetric policy.
    """
    candidate = _coerce(candidate_type)
    existing = _coerce(existing_type)
    if candidate is ScheduleType.CUSTOM:
        return existing is not None and existing is not ScheduleType.AVAILABILITY
    return conflicts(candidate_type, existing_type)
