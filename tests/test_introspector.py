"""Tests for SchemaIntrospector against a real SQLite database."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from schema_lens.environment import Environment
from schema_lens.schema.introspector import SchemaIntrospector, _referential_action
from schema_lens.schema.models import ReferentialAction

DDL = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email VARCHAR(255) NOT NULL,
        status TEXT DEFAULT 'active'
    )
    """,
    "CREATE UNIQUE INDEX idx_users_email ON users(email)",
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        user_id INTEGER NOT NULL,
        created_at TEXT,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX idx_orders_user_created ON orders(user_id, created_at)",
    "CREATE TABLE logs (line TEXT)",
    "CREATE VIEW active_users AS SELECT id, email FROM users WHERE status = 'active'",
]


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    url = f"sqlite:///{tmp_path / 'app.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in DDL:
            conn.execute(text(statement))
    engine.dispose()
    return url


class TestReferentialAction:
    """Normalizing reflected action strings."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("CASCADE", ReferentialAction.CASCADE),
            ("set  null", ReferentialAction.SET_NULL),
            ("no action", ReferentialAction.NO_ACTION),
            (None, None),
            ("", None),
            ("EXPLODE", None),
        ],
    )
    def test_values(self, value: str | None, expected: ReferentialAction | None) -> None:
        """Known actions parsed, anything else ignored."""
        assert _referential_action(value) is expected


class TestConnection:
    """Context manager lifecycle."""

    def test_requires_with_block(self, database_url: str) -> None:
        """Using the introspector outside a with block is an error."""
        introspector = SchemaIntrospector(database_url)
        with pytest.raises(RuntimeError, match="Use with statement"):
            introspector.get_table_names()

    def test_engine_disposed_on_exit(self, database_url: str) -> None:
        """The introspector cannot be reused after the block."""
        with SchemaIntrospector(database_url) as introspector:
            introspector.get_table_names()
        with pytest.raises(RuntimeError):
            introspector.get_table_names()


class TestIntrospect:
    """Full snapshot."""

    def test_table_names(self, database_url: str) -> None:
        """Sorted base tables without SQLite internals or views."""
        with SchemaIntrospector(database_url) as introspector:
            assert introspector.get_table_names() == ["logs", "orders", "users"]

    def test_snapshot_metadata(self, database_url: str) -> None:
        """Tables first, then views; environment aliases accepted."""
        with SchemaIntrospector(database_url) as introspector:
            schema = introspector.introspect("app", "prod")
        assert schema.name == "app"
        assert schema.environment is Environment.PRODUCTION
        assert schema.table_names() == ["logs", "orders", "users", "active_users"]

    def test_columns(self, database_url: str) -> None:
        """Types, nullability, defaults and primary keys."""
        with SchemaIntrospector(database_url) as introspector:
            users = introspector.introspect("app", "dev").get_table("users")
        id_col, email, status = users.columns
        assert id_col.is_primary_key
        assert email.type == "VARCHAR(255)"
        assert not email.is_nullable
        assert status.is_nullable
        assert status.has_default
        assert [c.name for c in users.primary_key_columns()] == ["id"]

    def test_indexes(self, database_url: str) -> None:
        """Named indexes with ordered columns and uniqueness."""
        with SchemaIntrospector(database_url) as introspector:
            schema = introspector.introspect("app", "dev")
        (email_index,) = schema.get_table("users").indexes
        assert email_index.name == "idx_users_email"
        assert email_index.is_unique
        (orders_index,) = schema.get_table("orders").indexes
        assert orders_index.columns == ("user_id", "created_at")
        assert not orders_index.is_unique

    def test_foreign_keys(self, database_url: str) -> None:
        """Column pairs with the ON DELETE action."""
        with SchemaIntrospector(database_url) as introspector:
            orders = introspector.introspect("app", "dev").get_table("orders")
        (fk,) = orders.foreign_keys
        assert (fk.table, fk.column, fk.references_table, fk.references_column) == (
            "orders", "user_id", "users", "id",
        )
        assert fk.on_delete is ReferentialAction.CASCADE

    def test_table_without_key_or_index(self, database_url: str) -> None:
        """logs has neither."""
        with SchemaIntrospector(database_url) as introspector:
            logs = introspector.introspect("app", "dev").get_table("logs")
        assert not logs.has_primary_key()
        assert logs.indexes == ()

    def test_view(self, database_url: str) -> None:
        """Views carry columns only."""
        with SchemaIntrospector(database_url) as introspector:
            view = introspector.introspect("app", "dev").get_table("active_users")
        assert view.is_view()
        assert [c.name for c in view.columns] == ["id", "email"]
        assert view.indexes == ()
        assert view.foreign_keys == ()
