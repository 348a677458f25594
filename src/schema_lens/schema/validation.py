"""Integrity checks over a single schema snapshot.

Rules:
- Missing Primary Key (WARNING): base table without a primary key column
- Orphaned Foreign Key (ERROR): referenced table does not exist
- Invalid Foreign Key (ERROR): referenced column does not exist
- No Indexes (INFO): base table without any index
- Nullable Foreign Key (WARNING): nullable FK column whose ON DELETE is not SET NULL

A schema is valid when no ERROR issue is found.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from schema_lens.environment import Environment
from schema_lens.schema.models import DatabaseSchema, ReferentialAction
from schema_lens.scoring.calculator import ICECalculator
from schema_lens.scoring.ice import ICEScore


class ValidationSeverity(StrEnum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class ValidationIssue(BaseModel):
    """A single rule violation."""

    severity: ValidationSeverity
    category: str
    message: str
    table: str | None = None
    column: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    ice_score: ICEScore | None = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "table": self.table,
            "column": self.column,
            "details": dict(self.details),
            "ice_score": self.ice_score.to_dict() if self.ice_score else None,
        }


class SchemaValidationReport(BaseModel):
    """Result of validate_schema().

    Example:
        >>> report = SchemaValidationReport(database_name="app", environment="development")
        >>> report.is_valid
        True
        >>> report.format_report()
        'Schema app (development) is valid - no issues found'
    """

    database_name: str
    environment: Environment
    issues: list[ValidationIssue] = Field(default_factory=list)
    validated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def _count(self, severity: ValidationSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity is severity)

    @property
    def error_count(self) -> int:
        return self._count(ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return self._count(ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return self._count(ValidationSeverity.INFO)

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0

    def issues_by_severity(self, severity: ValidationSeverity | str) -> list[ValidationIssue]:
        severity = ValidationSeverity(severity)
        return [issue for issue in self.issues if issue.severity is severity]

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        header = f"Schema {self.database_name} ({self.environment})"
        if not self.issues:
            return f"{header} is valid - no issues found"

        status = "is valid" if self.is_valid else "is INVALID"
        lines = [
            f"{header} {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), {self.info_count} info"
        ]

        for severity in ValidationSeverity:
            group = self.issues_by_severity(severity)
            if not group:
                continue
            lines.append(f"\n  {severity.value} ({len(group)}):")
            for issue in group:
                lines.append(f"    - [{issue.category}] {issue.message}")

        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "database_name": self.database_name,
            "environment": self.environment.value,
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "issues": [issue.to_dict() for issue in self.issues],
            "validated_at": self.validated_at.isoformat(),
        }


def validate_schema(
    schema: DatabaseSchema, calculator: ICECalculator | None = None
) -> SchemaValidationReport:
    """Apply every validation rule to *schema*.

    Issues are reported table by table in snapshot order. Missing primary
    keys and nullable foreign keys carry an ICE score for the schema's
    environment.
    """
    calculator = calculator or ICECalculator()
    tables = {table.name: table for table in schema.tables}
    issues: list[ValidationIssue] = []

    for table in schema.tables:
        if not table.is_view() and not table.has_primary_key():
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    category="Missing Primary Key",
                    message=f"Table '{table.name}' has no primary key",
                    table=table.name,
                    details={
                        "recommendation": "Add a primary key column for better query "
                        "performance and data integrity",
                    },
                    ice_score=calculator.calculate_for_missing_primary_key(
                        table, schema.tables, schema.environment
                    ),
                )
            )

        for fk in table.foreign_keys:
            referenced = tables.get(fk.references_table)
            reference = {
                "referenced_table": fk.references_table,
                "referenced_column": fk.references_column,
            }
            if referenced is None:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        category="Orphaned Foreign Key",
                        message=f"Foreign key references non-existent table '{fk.references_table}'",
                        table=table.name,
                        column=fk.column,
                        details=reference,
                    )
                )
            elif referenced.get_column(fk.references_column) is None:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        category="Invalid Foreign Key",
                        message=(
                            f"Foreign key references non-existent column "
                            f"'{fk.references_column}' in table '{fk.references_table}'"
                        ),
                        table=table.name,
                        column=fk.column,
                        details=reference,
                    )
                )

        if not table.is_view() and not table.indexes:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.INFO,
                    category="No Indexes",
                    message=f"Table '{table.name}' has no indexes",
                    table=table.name,
                    details={
                        "recommendation": "Consider adding indexes on frequently queried columns",
                    },
                )
            )

        for fk in table.foreign_keys:
            column = table.get_column(fk.column)
            if column is None or not column.is_nullable:
                continue
            if fk.on_delete is ReferentialAction.SET_NULL:
                continue
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    category="Nullable Foreign Key",
                    message=f"Nullable foreign key column '{fk.column}' should have ON DELETE SET NULL",
                    table=table.name,
                    column=fk.column,
                    details={
                        "current_on_delete": fk.on_delete.value if fk.on_delete else None,
                        "recommendation": ReferentialAction.SET_NULL.value,
                    },
                    ice_score=calculator.calculate_for_nullable_foreign_key(
                        table.name, fk.column, schema.environment
                    ),
                )
            )

    return SchemaValidationReport(
        database_name=schema.name,
        environment=schema.environment,
        issues=issues,
    )
