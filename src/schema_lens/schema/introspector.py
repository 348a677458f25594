"""Live database introspection via SQLAlchemy.

Builds a ``DatabaseSchema`` snapshot from any database SQLAlchemy can
reflect (SQLite, PostgreSQL, MySQL, ...):
- Base tables and views
- Columns (declared type, nullability, default, primary key flag)
- Indexes (name, ordered columns, uniqueness)
- Foreign keys (one entry per column pair, ON DELETE / ON UPDATE)

Usage:
    with SchemaIntrospector("sqlite:///app.db") as introspector:
        schema = introspector.introspect("app", "development")
"""

import logging

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine, Inspector

from schema_lens.environment import Environment, parse_environment
from schema_lens.schema.models import (
    Column,
    DatabaseSchema,
    ForeignKey,
    Index,
    ReferentialAction,
    TableInfo,
)

logger = logging.getLogger(__name__)


def _referential_action(value: str | None) -> ReferentialAction | None:
    if not value:
        return None
    try:
        return ReferentialAction(" ".join(value.upper().split()))
    except ValueError:
        logger.debug(f"Ignoring unknown referential action: {value}")
        return None


class SchemaIntrospector:
    """Reflects a database schema into snapshot models.

    Usage:
        with SchemaIntrospector(database_url) as introspector:
            schema = introspector.introspect("app", Environment.PRODUCTION)
            names = introspector.get_table_names()
    """

    # SQLite bookkeeping tables
    EXCLUDED_PREFIXES = ("sqlite_",)

    def __init__(self, database_url: str):
        """Initialize with database connection URL.

        Args:
            database_url: SQLAlchemy database URL
        """
        self._database_url = database_url
        self._engine: Engine | None = None

    def __enter__(self) -> "SchemaIntrospector":
        """Context manager entry - creates the engine."""
        self._engine = create_engine(self._database_url)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - disposes the engine."""
        if self._engine:
            self._engine.dispose()
            self._engine = None

    def _inspector(self) -> Inspector:
        if not self._engine:
            raise RuntimeError("Introspector not connected. Use with statement.")
        return inspect(self._engine)

    def get_table_names(self) -> list[str]:
        """Base table names, sorted, without internal tables."""
        inspector = self._inspector()
        return sorted(
            name for name in inspector.get_table_names()
            if not name.startswith(self.EXCLUDED_PREFIXES)
        )

    def introspect(self, name: str, environment: Environment | str) -> DatabaseSchema:
        """Introspect the full database schema.

        Args:
            name: Database name recorded on the snapshot
            environment: Environment the database belongs to

        Returns:
            DatabaseSchema with every base table followed by every view
        """
        inspector = self._inspector()
        environment = parse_environment(environment)

        tables = [self._get_table(inspector, table_name, "table") for table_name in self.get_table_names()]
        tables.extend(
            self._get_table(inspector, view_name, "view")
            for view_name in sorted(inspector.get_view_names())
        )

        logger.debug(f"Introspected {len(tables)} table(s) from {name} ({environment})")
        return DatabaseSchema(name=name, environment=environment, tables=tables)

    def _get_table(self, inspector: Inspector, table_name: str, kind: str) -> TableInfo:
        if kind == "view":
            primary_key: set[str] = set()
            indexes: list[Index] = []
            foreign_keys: list[ForeignKey] = []
        else:
            pk_constraint = inspector.get_pk_constraint(table_name) or {}
            primary_key = set(pk_constraint.get("constrained_columns") or [])
            indexes = self._get_indexes(inspector, table_name)
            foreign_keys = self._get_foreign_keys(inspector, table_name)

        return TableInfo(
            name=table_name,
            kind=kind,
            columns=self._get_columns(inspector, table_name, primary_key),
            indexes=indexes,
            foreign_keys=foreign_keys,
        )

    def _get_columns(self, inspector: Inspector, table_name: str, primary_key: set[str]) -> list[Column]:
        columns = []
        for col in inspector.get_columns(table_name):
            default = col.get("default")
            columns.append(
                Column(
                    name=col["name"],
                    type=str(col["type"]),
                    is_nullable=col.get("nullable", True),
                    is_primary_key=col["name"] in primary_key,
                    default=str(default) if default is not None else None,
                )
            )
        return columns

    def _get_indexes(self, inspector: Inspector, table_name: str) -> list[Index]:
        indexes = []
        for idx in inspector.get_indexes(table_name):
            # Expression index entries have no column name
            columns = [c for c in idx.get("column_names", []) if c is not None]
            if not idx.get("name") or not columns:
                continue
            indexes.append(
                Index(
                    name=idx["name"],
                    table_name=table_name,
                    columns=columns,
                    is_unique=bool(idx.get("unique", False)),
                )
            )
        return indexes

    def _get_foreign_keys(self, inspector: Inspector, table_name: str) -> list[ForeignKey]:
        foreign_keys = []
        for fk in inspector.get_foreign_keys(table_name):
            options = fk.get("options") or {}
            for local_col, ref_col in zip(fk["constrained_columns"], fk["referred_columns"]):
                foreign_keys.append(
                    ForeignKey(
                        table=table_name,
                        column=local_col,
                        references_table=fk["referred_table"],
                        references_column=ref_col,
                        on_delete=_referential_action(options.get("ondelete")),
                        on_update=_referential_action(options.get("onupdate")),
                    )
                )
        return foreign_keys
