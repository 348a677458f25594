"""Pydantic models for schema snapshots.

This module contains the snapshot domain models:
- Snapshot models: Column, Index, ForeignKey, TableInfo, DatabaseSchema
- Derived models: Relationship (built from a ForeignKey)

All models are frozen. A snapshot is created once per fetch and never
updated in place; fetch again to get a newer one.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from schema_lens.environment import Environment, parse_environment


class ReferentialAction(StrEnum):
    """ON DELETE / ON UPDATE action of a foreign key."""

    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


Name = Annotated[str, AfterValidator(_not_blank)]


# ============================================================================
# Snapshot Models
# ============================================================================


class Column(BaseModel):
    """Schema for a table column.

    Example:
        >>> col = Column(name="email", type="varchar(255)")
        >>> col.type
        'varchar(255)'
        >>> col.is_nullable
        True
    """

    model_config = ConfigDict(frozen=True)

    name: Name
    type: Name
    is_nullable: bool = True
    is_primary_key: bool = False
    default: str | None = None

    @property
    def is_required(self) -> bool:
        """NOT NULL without a default: inserts must supply a value."""
        return not self.is_nullable and self.default is None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def type_category(self) -> str:
        """Broad storage class: text, numeric, blob or unknown."""
        declared = self.type.upper()
        if any(marker in declared for marker in ("CHAR", "CLOB", "TEXT")):
            return "text"
        if any(marker in declared for marker in ("INT", "REAL", "FLOA", "DOUB", "NUMERIC", "DECIMAL")):
            return "numeric"
        if "BLOB" in declared:
            return "blob"
        return "unknown"


class Index(BaseModel):
    """Schema for a table index. Column order is significant."""

    model_config = ConfigDict(frozen=True)

    name: Name
    table_name: Name
    columns: tuple[Name, ...] = Field(min_length=1)
    is_unique: bool = False
    is_primary: bool = False

    @property
    def is_composite(self) -> bool:
        return len(self.columns) > 1

    def covers_column(self, column_name: str) -> bool:
        return column_name in self.columns

    def has_column_as_prefix(self, column_name: str) -> bool:
        """True if *column_name* is the leading column (usable for lookups)."""
        return self.columns[0] == column_name


class ForeignKey(BaseModel):
    """Schema for a single-column foreign key reference."""

    model_config = ConfigDict(frozen=True)

    table: Name
    column: Name
    references_table: Name
    references_column: Name
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None

    @property
    def is_required(self) -> bool:
        """Child rows cannot outlive the parent (CASCADE or RESTRICT)."""
        return self.on_delete in (ReferentialAction.CASCADE, ReferentialAction.RESTRICT)

    @property
    def cascades_on_delete(self) -> bool:
        return self.on_delete is ReferentialAction.CASCADE


class TableInfo(BaseModel):
    """Schema for a table or view.

    Views are exempt from primary-key and orphan-table rules.

    Example:
        >>> table = TableInfo(name="users", columns=[Column(name="id", type="INTEGER", is_primary_key=True)])
        >>> table.has_primary_key()
        True
    """

    model_config = ConfigDict(frozen=True)

    name: Name
    kind: Literal["table", "view"] = "table"
    columns: tuple[Column, ...] = ()
    indexes: tuple[Index, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()

    def is_view(self) -> bool:
        return self.kind == "view"

    def has_primary_key(self) -> bool:
        return any(column.is_primary_key for column in self.columns)

    def primary_key_columns(self) -> list[Column]:
        return [column for column in self.columns if column.is_primary_key]

    def required_columns(self) -> list[Column]:
        return [column for column in self.columns if column.is_required]

    def has_foreign_keys(self) -> bool:
        return len(self.foreign_keys) > 0

    def get_column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_index_on_column(self, column_name: str) -> bool:
        """True if any index covers *column_name*, in any position."""
        return any(index.covers_column(column_name) for index in self.indexes)

    def foreign_key_columns(self) -> list[str]:
        """Distinct foreign key columns, in declaration order."""
        return list(dict.fromkeys(fk.column for fk in self.foreign_keys))

    def referenced_tables(self) -> list[str]:
        return list(dict.fromkeys(fk.references_table for fk in self.foreign_keys))


class DatabaseSchema(BaseModel):
    """Complete snapshot of one database.

    Example:
        >>> schema = DatabaseSchema(name="app", environment="prod", tables=[])
        >>> schema.environment
        <Environment.PRODUCTION: 'production'>
    """

    model_config = ConfigDict(frozen=True)

    name: Name
    environment: Environment
    tables: tuple[TableInfo, ...] = ()
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("environment", mode="before")
    @classmethod
    def _parse_environment(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_environment(value)
        return value

    def get_table(self, name: str) -> TableInfo | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]

    def tables_that_reference(self, table_name: str) -> list[TableInfo]:
        return [
            table
            for table in self.tables
            if any(fk.references_table == table_name for fk in table.foreign_keys)
        ]

    def tables_referenced_by(self, table_name: str) -> list[TableInfo]:
        table = self.get_table(table_name)
        if table is None:
            return []
        referenced = set(table.referenced_tables())
        return [other for other in self.tables if other.name in referenced]

    def tables_without_primary_key(self) -> list[TableInfo]:
        return [t for t in self.tables if not t.is_view() and not t.has_primary_key()]

    def tables_with_foreign_keys(self) -> list[TableInfo]:
        return [t for t in self.tables if t.has_foreign_keys()]

    def views(self) -> list[TableInfo]:
        return [t for t in self.tables if t.is_view()]

    def base_tables(self) -> list[TableInfo]:
        return [t for t in self.tables if not t.is_view()]

    def age_in_minutes(self, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds() / 60

    def is_fresh(self, within_minutes: float = 10, now: datetime | None = None) -> bool:
        return self.age_in_minutes(now) <= within_minutes


# ============================================================================
# Derived Models
# ============================================================================


class Relationship(BaseModel):
    """A foreign key seen as an edge between two tables."""

    model_config = ConfigDict(frozen=True)

    from_table: str
    from_column: str
    to_table: str
    to_column: str
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None

    @classmethod
    def from_foreign_key(cls, fk: ForeignKey) -> "Relationship":
        return cls(
            from_table=fk.table,
            from_column=fk.column,
            to_table=fk.references_table,
            to_column=fk.references_column,
            on_delete=fk.on_delete,
            on_update=fk.on_update,
        )

    def is_required(self) -> bool:
        return self.on_delete in (ReferentialAction.CASCADE, ReferentialAction.RESTRICT)

    def is_optional(self) -> bool:
        # An unset action behaves as NO ACTION.
        return self.on_delete in (None, ReferentialAction.SET_NULL, ReferentialAction.NO_ACTION)

    def is_self_referential(self) -> bool:
        return self.from_table == self.to_table

    def cascades_on_delete(self) -> bool:
        return self.on_delete is ReferentialAction.CASCADE

    @property
    def description(self) -> str:
        return f"{self.from_table}.{self.from_column} → {self.to_table}.{self.to_column}"

    def to_dict(self) -> dict:
        return {
            "from_table": self.from_table,
            "from_column": self.from_column,
            "to_table": self.to_table,
            "to_column": self.to_column,
            "on_delete": self.on_delete.value if self.on_delete else None,
            "on_update": self.on_update.value if self.on_update else None,
            "is_required": self.is_required(),
        }
