"""
Relational schema for the Ortomat store.

Each table is described by a TableSpec: its column types (used to encode
records on insert and decode rows on read) and its foreign keys. The DDL
executed on initialization is generated from the same specs, so the column
set accepted by create_many() and the one SQLite enforces cannot drift.

Column types:
    text  - TEXT, passed through
    int   - INTEGER
    real  - REAL
    bool  - INTEGER 0/1, decoded back to bool
    json  - TEXT holding a JSON document, decoded to dict/list

Invariants:
    - Every table has a TEXT primary key named "id"
    - Foreign keys reference "id" of the parent table
    - PRAGMA foreign_keys is ON for every connection, so parent rows must
      exist before children are inserted and outlive them on delete

How to change safely:
    - Add columns as nullable so older snapshots still insert
    - Keep the registry rank of a table below every table referencing it
"""

from __future__ import annotations

from dataclasses import dataclass, field

COLUMN_TYPES = {
    "text": "TEXT",
    "int": "INTEGER",
    "real": "REAL",
    "bool": "INTEGER",
    "json": "TEXT",
}


@dataclass(frozen=True)
class Column:
    """A table column.

    Attributes:
        name: Column name (also the record key in snapshots)
        type: One of COLUMN_TYPES
        nullable: Whether NULL is accepted
        unique: Whether a UNIQUE constraint applies
        references: Parent table name for a foreign key
        default: SQL default expression
    """

    name: str
    type: str = "text"
    nullable: bool = True
    unique: bool = False
    references: str | None = None
    default: str | None = None

    def ddl(self) -> str:
        parts = [self.name, COLUMN_TYPES[self.type]]
        if self.name == "id":
            parts.append("PRIMARY KEY")
        elif not self.nullable:
            parts.append("NOT NULL")
        if self.unique:
            parts.append("UNIQUE")
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        if self.references:
            parts.append(f"REFERENCES {self.references}(id)")
        return " ".join(parts)


@dataclass(frozen=True)
class TableSpec:
    """Column layout and relations of one table."""

    name: str
    columns: tuple[Column, ...]
    indexes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @property
    def foreign_keys(self) -> dict[str, str]:
        """Map of column name -> referenced table."""
        return {c.name: c.references for c in self.columns if c.references}

    def column(self, name: str) -> Column | None:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def ddl(self) -> str:
        body = ",\n    ".join(c.ddl() for c in self.columns)
        statements = [f"CREATE TABLE IF NOT EXISTS {self.name} (\n    {body}\n);"]
        for column_name in self.indexes:
            statements.append(
                f"CREATE INDEX IF NOT EXISTS idx_{self.name}_{column_name} "
                f"ON {self.name}({column_name});"
            )
        return "\n".join(statements)


def _timestamps() -> tuple[Column, ...]:
    return (
        Column("created_at", nullable=False),
        Column("updated_at"),
    )


USERS = TableSpec(
    name="users",
    columns=(
        Column("id"),
        Column("email", nullable=False, unique=True),
        Column("password", nullable=False),
        Column("role", nullable=False, default="'DOCTOR'"),
        Column("first_name"),
        Column("last_name"),
        Column("middle_name"),
        Column("phone"),
        Column("is_verified", "bool", nullable=False, default="0"),
        *_timestamps(),
    ),
    indexes=("role",),
)

ORTOMATS = TableSpec(
    name="ortomats",
    columns=(
        Column("id"),
        Column("name", nullable=False),
        Column("address", nullable=False),
        Column("city"),
        Column("total_cells", "int", nullable=False, default="37"),
        Column("status", nullable=False, default="'active'"),
        *_timestamps(),
    ),
)

PRODUCTS = TableSpec(
    name="products",
    columns=(
        Column("id"),
        Column("name", nullable=False),
        Column("sku", unique=True),
        Column("description"),
        Column("category", nullable=False),
        Column("size"),
        Column("price", "real", nullable=False),
        Column("main_image"),
        Column("images", "json"),
        Column("image_url"),
        Column("video_url"),
        Column("color"),
        Column("material"),
        Column("manufacturer"),
        Column("country"),
        Column("type"),
        Column("size_chart_url"),
        Column("terms_and_conditions"),
        Column("attributes", "json"),
        Column("referral_points", "int", default="0"),
        *_timestamps(),
    ),
)

CELLS = TableSpec(
    name="cells",
    columns=(
        Column("id"),
        Column("number", "int", nullable=False),
        Column("ortomat_id", nullable=False, references="ortomats"),
        Column("product_id", references="products"),
        Column("is_available", "bool", nullable=False, default="1"),
        Column("last_refill_date"),
        Column("courier_id", references="users"),
        *_timestamps(),
    ),
    indexes=("ortomat_id",),
)

DOCTOR_ORTOMATS = TableSpec(
    name="doctor_ortomats",
    columns=(
        Column("id"),
        Column("doctor_id", nullable=False, references="users"),
        Column("ortomat_id", nullable=False, references="ortomats"),
        Column("referral_code", nullable=False, unique=True),
        Column("qr_code"),
        Column("total_points", "int", nullable=False, default="0"),
        Column("total_sales", "int", nullable=False, default="0"),
        Column("created_at", nullable=False),
    ),
    indexes=("doctor_id", "ortomat_id"),
)

COURIER_ORTOMATS = TableSpec(
    name="courier_ortomats",
    columns=(
        Column("id"),
        Column("courier_id", nullable=False, references="users"),
        Column("ortomat_id", nullable=False, references="ortomats"),
        Column("status", nullable=False, default="'active'"),
        Column("created_at", nullable=False),
    ),
    indexes=("courier_id", "ortomat_id"),
)

INVITES = TableSpec(
    name="invites",
    columns=(
        Column("id"),
        Column("token", nullable=False, unique=True),
        Column("ortomat_id", nullable=False, references="ortomats"),
        Column("created_by", nullable=False, references="users"),
        Column("used_by", references="users"),
        Column("used_at"),
        Column("expires_at", nullable=False),
        Column("is_active", "bool", nullable=False, default="1"),
        Column("created_at", nullable=False),
    ),
)

PAYMENTS = TableSpec(
    name="payments",
    columns=(
        Column("id"),
        Column("order_id", nullable=False, unique=True),
        Column("amount", "real", nullable=False),
        Column("status", nullable=False, default="'PENDING'"),
        Column("doctor_id", references="users"),
        Column("description"),
        Column("metadata", "json"),
        *_timestamps(),
    ),
)

SALES = TableSpec(
    name="sales",
    columns=(
        Column("id"),
        Column("order_number"),
        Column("customer_phone"),
        Column("amount", "real", nullable=False),
        Column("commission", "real"),
        Column("referral_code"),
        Column("status", nullable=False, default="'pending'"),
        Column("cell_number", "int"),
        Column("doctor_id", references="users"),
        Column("payment_id", references="payments"),
        Column("ortomat_id", references="ortomats"),
        Column("product_id", references="products"),
        Column("created_at", nullable=False),
        Column("completed_at"),
    ),
    indexes=("doctor_id",),
)

LOGS = TableSpec(
    name="logs",
    columns=(
        Column("id"),
        Column("type", nullable=False),
        Column("category", nullable=False),
        Column("message", nullable=False),
        Column("metadata", "json"),
        Column("user_id", references="users"),
        Column("ortomat_id", references="ortomats"),
        Column("cell_number", "int"),
        Column("severity", nullable=False, default="'INFO'"),
        Column("created_at", nullable=False),
    ),
    indexes=("created_at",),
)

SETTINGS = TableSpec(
    name="settings",
    columns=(
        Column("id"),
        Column("purchase_terms"),
        *_timestamps(),
    ),
)

TABLES: dict[str, TableSpec] = {
    spec.name: spec
    for spec in (
        USERS,
        ORTOMATS,
        PRODUCTS,
        CELLS,
        DOCTOR_ORTOMATS,
        COURIER_ORTOMATS,
        INVITES,
        PAYMENTS,
        SALES,
        LOGS,
        SETTINGS,
    )
}


def schema_script() -> str:
    """Full DDL script for a fresh database."""
    return "\n\n".join(spec.ddl() for spec in TABLES.values())
