"""CLI module for schema comparison and analysis.

Provides commands to compare two environments, inspect foreign-key
relationships, validate a schema, and suggest optimizations.

Usage:
    schema-lens environments
    schema-lens compare --source dev --target prod
    schema-lens compare --source staging --target prod --migration-plan
    schema-lens relationships --env prod --table orders --cascade users
    schema-lens validate --env prod --json
    schema-lens optimize --env prod
    schema-lens analyze --env dev

Commands:
    compare        - Compare source schema against target schema
    relationships  - Show relationships, cycles and population order
    validate       - Check schema integrity rules
    optimize       - Suggest ICE-scored optimizations
    analyze        - Show schema statistics
    environments   - List configured environments
"""

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from schema_lens.config.loader import load_config
from schema_lens.config.models import EnvironmentNotConfiguredError, LensConfig
from schema_lens.schema.differences import SEVERITY_ORDER, SchemaComparisonResult
from schema_lens.scoring.errors import ScoringError
from schema_lens.service import (
    SameDatabaseError,
    analyze_database,
    compare_environments,
    get_relationships,
    suggest_optimizations,
    validate_database,
)

console = Console()

_SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
    "ERROR": "bold red",
    "WARNING": "yellow",
    "INFO": "dim",
}


def _styled(label: str) -> str:
    style = _SEVERITY_STYLES.get(label, "")
    return f"[{style}]{label}[/{style}]" if style else escape(label)


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, default=str))


def _load(args: argparse.Namespace) -> LensConfig:
    return load_config(args.config)


def fails_threshold(result: SchemaComparisonResult, fail_on: str) -> bool:
    """True if any difference is at or above the *fail_on* severity."""
    if fail_on == "none":
        return False
    threshold = [severity.value for severity in SEVERITY_ORDER].index(fail_on)
    failing = {severity for severity in SEVERITY_ORDER[: threshold + 1]}
    return any(difference.severity in failing for difference in result.differences)


# ============================================================================
# Command implementations
# ============================================================================


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare the source environment's schema against the target's.

    Args:
        args: Parsed arguments with source, target, json, migration_plan.

    Returns:
        0 when no difference reaches the configured fail_on severity, 1 otherwise.
    """
    config = _load(args)

    if not args.json:
        console.print("Comparing schemas...", style="dim")
    report = compare_environments(config, args.source, args.target)
    result = report.result

    if args.json:
        _print_json(report.to_dict())
    elif args.migration_plan:
        print(result.migration_plan())
    else:
        console.print(
            f"\n[bold]{result.source_environment}[/bold] → "
            f"[bold cyan]{result.target_environment}[/bold cyan] "
            f"({result.source_table_count} vs {result.target_table_count} tables, "
            f"{report.execution_time_ms:.0f}ms)"
        )

        if result.is_identical():
            console.print("[bold green]v[/bold green] Schemas are identical - no differences found")
        else:
            table = Table(title="Schema Differences", show_header=True, header_style="bold")
            table.add_column("Severity")
            table.add_column("Type")
            table.add_column("Location")
            table.add_column("ICE", justify="right")
            table.add_column("Description")

            for difference in result.differences:
                table.add_row(
                    _styled(difference.severity.value),
                    difference.type.value,
                    escape(str(difference.location)),
                    f"{difference.ice_score.combined:.2f}",
                    escape(difference.description),
                )

            console.print(table)
            s = result.summary
            console.print(
                f"\nTotal: {s.total_differences} "
                f"(critical {s.critical_count}, high {s.high_count}, "
                f"medium {s.medium_count}, low {s.low_count})"
            )

    return 1 if fails_threshold(result, config.comparison.fail_on) else 0


def cmd_relationships(args: argparse.Namespace) -> int:
    """Show relationships of an environment's schema.

    Args:
        args: Parsed arguments with env, table, cascade, json.

    Returns:
        0 always (informational command).
    """
    config = _load(args)
    report = get_relationships(config, args.env, args.table, cascade_from=args.cascade)

    if args.json:
        _print_json(report.to_dict())
        return 0

    title = f"Relationships: {report.database_name} ({report.environment})"
    if report.table_name:
        title += f" - {report.table_name}"
    table = Table(title=escape(title), show_header=True, header_style="bold")
    table.add_column("From")
    table.add_column("To")
    table.add_column("On Delete")
    table.add_column("Required")

    for rel in report.relationships:
        table.add_row(
            escape(f"{rel.from_table}.{rel.from_column}"),
            escape(f"{rel.to_table}.{rel.to_column}"),
            rel.on_delete.value if rel.on_delete else "-",
            "yes" if rel.is_required() else "no",
        )

    console.print(table)
    console.print(
        f"\n{report.relationship_count} relationship(s): "
        f"{report.required_count} required, {report.optional_count} optional, "
        f"{report.self_referential_count} self-referential"
    )

    if report.cycles:
        console.print("\n[yellow]Circular dependencies:[/yellow]")
        for cycle in report.cycles:
            console.print(f"  {escape(' → '.join(cycle))}")

    if report.population_order:
        console.print(f"\n[bold]Population order:[/bold] {escape(', '.join(report.population_order))}")

    if args.cascade:
        console.print(f"\n[bold]Cascade chains from {escape(args.cascade)}:[/bold]")
        if not report.cascade_chains:
            console.print("  [dim]none[/dim]")
        for chain in report.cascade_chains:
            console.print(f"  {escape(' → '.join(chain))}")

    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate an environment's schema.

    Args:
        args: Parsed arguments with env, json.

    Returns:
        0 on valid schema, 1 when any ERROR issue is found.
    """
    config = _load(args)
    report = validate_database(config, args.env)

    if args.json:
        _print_json(report.to_dict())
        return 0 if report.is_valid else 1

    if not report.issues:
        console.print(f"[bold green]v[/bold green] {escape(report.format_report())}")
        return 0

    table = Table(
        title=escape(f"Validation: {report.database_name} ({report.environment})"),
        show_header=True,
        header_style="bold",
    )
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Location")
    table.add_column("Message")

    for issue in report.issues:
        location = issue.table or ""
        if issue.column:
            location += f".{issue.column}"
        table.add_row(
            _styled(issue.severity.value),
            escape(issue.category),
            escape(location),
            escape(issue.message),
        )

    console.print(table)
    status = "[bold green]valid[/bold green]" if report.is_valid else "[bold red]INVALID[/bold red]"
    console.print(
        f"\nSchema {status}: {report.error_count} error(s), "
        f"{report.warning_count} warning(s), {report.info_count} info"
    )
    return 0 if report.is_valid else 1


def cmd_optimize(args: argparse.Namespace) -> int:
    """Suggest optimizations for an environment's schema.

    Args:
        args: Parsed arguments with env, json.

    Returns:
        0 always (informational command).
    """
    config = _load(args)
    report = suggest_optimizations(config, args.env)

    if args.json:
        _print_json(report.to_dict())
        return 0

    if not report.optimizations:
        console.print("[bold green]v[/bold green] No optimizations suggested")
        return 0

    table = Table(
        title=escape(f"Optimizations: {report.database_name} ({report.environment})"),
        show_header=True,
        header_style="bold",
    )
    table.add_column("Priority")
    table.add_column("Type")
    table.add_column("Location")
    table.add_column("ICE", justify="right")
    table.add_column("Suggestion")

    for opt in report.optimizations:
        table.add_row(
            _styled(opt.priority.value),
            opt.type.value,
            escape(opt.location),
            f"{opt.ice_score.combined:.2f}" if opt.ice_score else "-",
            escape(opt.suggestion),
        )

    console.print(table)
    console.print(f"\n{report.summary.total} suggestion(s)")
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    """Show statistics of an environment's schema.

    Args:
        args: Parsed arguments with env, json.

    Returns:
        0 always (informational command).
    """
    config = _load(args)
    analysis = analyze_database(config, args.env)

    if args.json:
        _print_json(analysis.to_dict())
        return 0

    stats = Table(
        title=escape(f"Schema: {analysis.database_name} ({analysis.environment})"),
        show_header=False,
    )
    stats.add_column("Key", style="dim")
    stats.add_column("Value", justify="right")
    for key, value in analysis.statistics.model_dump().items():
        stats.add_row(key.replace("_", " ").capitalize(), str(value))
    console.print(stats)

    tables = Table(title="Tables", show_header=True, header_style="bold")
    tables.add_column("Table")
    tables.add_column("Columns", justify="right")
    tables.add_column("Indexes", justify="right")
    tables.add_column("Foreign Keys", justify="right")
    tables.add_column("Primary Key")
    for table in analysis.tables:
        name = f"{table.table_name} (view)" if table.is_view else table.table_name
        tables.add_row(
            escape(name),
            str(table.column_count),
            str(table.index_count),
            str(table.foreign_key_count),
            escape(", ".join(table.primary_key_columns)) or "[yellow]none[/yellow]",
        )
    console.print(tables)

    if analysis.problematic_tables:
        console.print(f"\n[yellow]Needs attention:[/yellow] {escape(', '.join(analysis.problematic_tables))}")
    if analysis.orphaned_tables:
        console.print(f"[dim]No relationships:[/dim] {escape(', '.join(analysis.orphaned_tables))}")
    return 0


def cmd_environments(args: argparse.Namespace) -> int:
    """List configured environments.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if the config file is not found.
    """
    config = _load(args)

    table = Table(title="Environments", show_header=True, header_style="bold")
    table.add_column("Environment")
    table.add_column("Name")
    table.add_column("Description")

    for environment, profile in config.environments.items():
        table.add_row(
            f"[bold cyan]{environment.value}[/bold cyan]",
            escape(profile.name or environment.value),
            escape(profile.description),
        )

    console.print(table)
    console.print(f"\n[dim]compare fails on:[/dim] {config.comparison.fail_on}")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-lens",
        description="Schema comparison and relationship analysis",
    )

    # Global options
    parser.add_argument(
        "--config",
        default=None,
        help="Path to schema-lens.toml (default: $SCHEMA_LENS_CONFIG or ./schema-lens.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # compare command
    p_compare = subparsers.add_parser(
        "compare",
        help="Compare source schema against target schema",
    )
    p_compare.add_argument("--source", "-s", required=True, help="Source environment (e.g., dev)")
    p_compare.add_argument("--target", "-t", required=True, help="Target environment (e.g., prod)")
    p_compare.add_argument("--json", action="store_true", help="Print result as JSON")
    p_compare.add_argument(
        "--migration-plan",
        action="store_true",
        help="Print the SQL migration plan instead of the difference table",
    )
    p_compare.set_defaults(func=cmd_compare)

    # relationships command
    p_relationships = subparsers.add_parser(
        "relationships",
        help="Show relationships, cycles and population order",
    )
    p_relationships.add_argument("--env", "-e", required=True, help="Environment to inspect")
    p_relationships.add_argument("--table", help="Only list relationships touching this table")
    p_relationships.add_argument(
        "--cascade",
        metavar="TABLE",
        help="Show ON DELETE CASCADE chains starting at this table",
    )
    p_relationships.add_argument("--json", action="store_true", help="Print result as JSON")
    p_relationships.set_defaults(func=cmd_relationships)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Check schema integrity rules",
    )
    p_validate.add_argument("--env", "-e", required=True, help="Environment to validate")
    p_validate.add_argument("--json", action="store_true", help="Print result as JSON")
    p_validate.set_defaults(func=cmd_validate)

    # optimize command
    p_optimize = subparsers.add_parser(
        "optimize",
        help="Suggest ICE-scored optimizations",
    )
    p_optimize.add_argument("--env", "-e", required=True, help="Environment to analyze")
    p_optimize.add_argument("--json", action="store_true", help="Print result as JSON")
    p_optimize.set_defaults(func=cmd_optimize)

    # analyze command
    p_analyze = subparsers.add_parser(
        "analyze",
        help="Show schema statistics",
    )
    p_analyze.add_argument("--env", "-e", required=True, help="Environment to analyze")
    p_analyze.add_argument("--json", action="store_true", help="Print result as JSON")
    p_analyze.set_defaults(func=cmd_analyze)

    # environments command
    p_environments = subparsers.add_parser(
        "environments",
        help="List configured environments",
    )
    p_environments.set_defaults(func=cmd_environments)

    return parser


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        return args.func(args)
    except ScoringError as e:
        console.print(f"[red]Internal scoring error: {escape(str(e))}[/red]")
        return 1
    except (
        FileNotFoundError,
        EnvironmentNotConfiguredError,
        SameDatabaseError,
        SQLAlchemyError,
        ValueError,
    ) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
