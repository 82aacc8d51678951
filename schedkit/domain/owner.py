"""Opaque owner reference for "whose calendar is this"."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OwnerRef:
    """
    Polymorphic owner of schedules.

    kind names the owning entity type (e.g. "user", "room") and id its key;
    the engine never interprets either.
    """

    kind: str
    id: str

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"
