"""
Entity-kind registry shared by the exporter and the restorer.

ENTITY_KINDS is the only place the backed-up kinds are listed. It is
ordered by dependency rank, parents before children:

    users -> ortomats -> products -> cells -> doctor_ortomats
          -> courier_ortomats -> invites -> payments -> sales -> logs
          -> settings

Export and insertion walk the registry forward; deletion walks it in
reverse, so children are always removed before the rows they reference.

Invariants:
    - Every foreign key points at a kind of strictly lower rank
    - Snapshot keys equal EntityKind.name
    - Only users carry a credential field
"""

from __future__ import annotations

from dataclasses import dataclass

from ..store.schema import TABLES


@dataclass(frozen=True)
class EntityKind:
    """One backed-up entity kind.

    Attributes:
        name: Key of the kind in Snapshot.data
        table: Store table holding the records
        rank: Dependency rank (lower ranks are parents)
        credential_field: Field stripped on export and reset on restore
        export_order_by: Column ordering exported records (storage order if None)
        export_descending: Export newest first
        bounded: Export is capped by the configured log limit
    """

    name: str
    table: str
    rank: int
    credential_field: str | None = None
    export_order_by: str | None = None
    export_descending: bool = False
    bounded: bool = False


ENTITY_KINDS: tuple[EntityKind, ...] = (
    EntityKind("users", "users", 0, credential_field="password"),
    EntityKind("ortomats", "ortomats", 1),
    EntityKind("products", "products", 2),
    EntityKind("cells", "cells", 3),
    EntityKind("doctor_ortomats", "doctor_ortomats", 4),
    EntityKind("courier_ortomats", "courier_ortomats", 5),
    EntityKind("invites", "invites", 6),
    EntityKind("payments", "payments", 7),
    EntityKind("sales", "sales", 8),
    EntityKind(
        "logs",
        "logs",
        9,
        export_order_by="created_at",
        export_descending=True,
        bounded=True,
    ),
    EntityKind("settings", "settings", 10),
)

KIND_NAMES: frozenset[str] = frozenset(kind.name for kind in ENTITY_KINDS)


def get_kind(name: str) -> EntityKind | None:
    for kind in ENTITY_KINDS:
        if kind.name == name:
            return kind
    return None


def insertion_order() -> list[EntityKind]:
    """Kinds in parent-before-child order."""
    return sorted(ENTITY_KINDS, key=lambda k: k.rank)


def deletion_order() -> list[EntityKind]:
    """Kinds in child-before-parent order."""
    return sorted(ENTITY_KINDS, key=lambda k: k.rank, reverse=True)


def dependency_violations() -> list[str]:
    """Foreign keys that point at a kind of equal or higher rank.

    An empty list means the registry order is safe for delete and insert.
    """
    rank_by_table = {kind.table: kind.rank for kind in ENTITY_KINDS}
    violations = []
    for kind in ENTITY_KINDS:
        for column, parent in TABLES[kind.table].foreign_keys.items():
            parent_rank = rank_by_table.get(parent)
            if parent_rank is None or parent_rank >= kind.rank:
                violations.append(f"{kind.table}.{column} -> {parent}")
    return violations
