"""Household snapshots: the entity collections the ledger computes over."""

import logging
from pathlib import Path
from typing import TypeVar

from pydantic import Field, ValidationError

from .exceptions import HouseholdLoadError
from .models import (
    Bill,
    BillPayment,
    Expense,
    Flat,
    LedgerModel,
    Member,
    Settlement,
)

logger = logging.getLogger(__name__)

_Entity = TypeVar("_Entity", Member, Expense, Bill, BillPayment, Settlement)


class HouseholdSnapshot(LedgerModel):
    """
    Every entity of one or more flats, passed explicitly to the ledger.

    Snapshots are immutable: scoping and merging return new snapshots.
    """

    flat: Flat | None = None
    members: list[Member] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    bills: list[Bill] = Field(default_factory=list)
    bill_payments: list[BillPayment] = Field(default_factory=list)
    settlements: list[Settlement] = Field(default_factory=list)

    @property
    def flat_ids(self) -> list[str]:
        """Distinct flat ids referenced by members, in first-seen order."""
        seen: dict[str, None] = {}
        if self.flat:
            seen[self.flat.id] = None
        for member in self.members:
            seen.setdefault(member.flat_id, None)
        return list(seen)

    def for_flat(self, flat_id: str) -> "HouseholdSnapshot":
        """Return a snapshot holding only the entities of one flat."""
        return HouseholdSnapshot(
            flat=self.flat if self.flat and self.flat.id == flat_id else None,
            members=[m for m in self.members if m.flat_id == flat_id],
            expenses=[e for e in self.expenses if e.flat_id == flat_id],
            bills=[b for b in self.bills if b.flat_id == flat_id],
            bill_payments=[p for p in self.bill_payments if p.flat_id == flat_id],
            settlements=[s for s in self.settlements if s.flat_id == flat_id],
        )

    def merge(self, other: "HouseholdSnapshot") -> "HouseholdSnapshot":
        """
        Merge another snapshot into a new one, keyed by entity id.

        Entities in ``other`` replace entities with the same id; neither
        snapshot is modified.
        """
        return HouseholdSnapshot(
            flat=other.flat or self.flat,
            members=_merge_by_id(self.members, other.members),
            expenses=_merge_by_id(self.expenses, other.expenses),
            bills=_merge_by_id(self.bills, other.bills),
            bill_payments=_merge_by_id(self.bill_payments, other.bill_payments),
            settlements=_merge_by_id(self.settlements, other.settlements),
        )

    def member_name(self, member_id: str) -> str:
        """Display name for a member id (the id itself when unknown)."""
        for member in self.members:
            if member.id == member_id:
                return member.name
        return member_id


def _merge_by_id(current: list[_Entity], incoming: list[_Entity]) -> list[_Entity]:
    merged = {entity.id: entity for entity in current}
    merged.update((entity.id, entity) for entity in incoming)
    return list(merged.values())


def load_household(path: Path, flat_id: str | None = None) -> HouseholdSnapshot:
    """
    Load a household snapshot from a JSON file.

    Args:
        path: JSON file with camelCase or snake_case keys
        flat_id: Optional flat to scope the snapshot to

    Returns:
        The validated snapshot

    Raises:
        HouseholdLoadError: If the file is missing or its content is invalid
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise HouseholdLoadError(str(path), f"Cannot read {path}: {e}") from e

    try:
        snapshot = HouseholdSnapshot.model_validate_json(raw)
    except ValidationError as e:
        raise HouseholdLoadError(
            str(path), f"Invalid household data in {path}:\n{e}"
        ) from e

    logger.info(
        f"Loaded {len(snapshot.members)} members, {len(snapshot.expenses)} expenses, "
        f"{len(snapshot.bills)} bills from {path}"
    )

    if flat_id:
        return snapshot.for_flat(flat_id)
    return snapshot
