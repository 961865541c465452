"""Main CLI entry point using Typer."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..conformity.cluster import Cluster
from ..conformity.codec import FieldMapDecodeError, format_timestamp
from ..models.resource import Resource
from ..rules.override import OverrideAction, TagOverridePolicy
from ..storage.records import ClusterRecordStorage, validate_field_map
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="janitor",
    help="Cloud Janitor - cleanup eligibility and cluster conformity tracking",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    config_file: Optional[str] = typer.Option(
        None, "--config", help="Config file (default: ~/.janitor/config.yaml or $JANITOR_CONFIG)"
    ),
    storage_path: Optional[str] = typer.Option(
        None,
        "--storage-path",
        help="Custom path for record storage (default: ~/.janitor/records or $JANITOR_STORAGE_PATH)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Cloud Janitor - cleanup eligibility and cluster conformity tracking."""
    global config

    # Load configuration
    try:
        config = Config.load(config_file)
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"✗ Invalid configuration: {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options
    if storage_path:
        config.storage_path = storage_path

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    try:
        setup_logging(level=log_level, verbose=verbose)
    except ValueError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    console.print(f"cloud-janitor version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")


def _load_document(path: Path) -> Any:
    """Load a YAML or JSON file (YAML is a superset of JSON)."""
    with open(path, "r") as f:
        return yaml.safe_load(f)


def _storage() -> ClusterRecordStorage:
    return ClusterRecordStorage(config.storage_path)


# Override tag commands group
tags_app = typer.Typer(help="Owner override tag commands")
app.add_typer(tags_app, name="tags")


@tags_app.command("evaluate")
def tags_evaluate(
    resources_file: Path = typer.Argument(..., help="YAML or JSON file with a list of resources"),
    as_json: bool = typer.Option(False, "--json", help="Print decisions as JSON"),
):
    """Show how the owner override tag affects cleanup of each resource.

    The file holds a list of resources (or a mapping with a "resources" key):

        - resource_id: vol-0abc
          resource_type: EBS_VOLUME
          state: available
          tags:
            janitor: "2025-01-15"

    Examples:
        janitor tags evaluate volumes.yaml
        janitor tags evaluate volumes.json --json
    """
    try:
        if not resources_file.exists():
            console.print(f"✗ File not found: {resources_file}", style="bold red")
            raise typer.Exit(code=1)

        document = _load_document(resources_file)
        if isinstance(document, dict):
            document = document.get("resources")
        if not isinstance(document, list):
            console.print("✗ Expected a list of resources", style="bold red")
            raise typer.Exit(code=1)

        resources = [Resource.from_dict(item) for item in document]
        policy = TagOverridePolicy(config.override_policy_config())

        decisions: List[Dict[str, Any]] = []
        for resource in resources:
            decision = policy.decide(resource)
            decisions.append(
                {
                    "resource_id": resource.resource_id,
                    "resource_type": resource.resource_type.value,
                    "state": resource.state,
                    "tag": resource.get_tag(policy.config.tag_key),
                    "decision": decision.action.value,
                    "termination_date": (
                        decision.termination_time.date().isoformat() if decision.termination_time else None
                    ),
                    "reason": decision.reason,
                }
            )

        if as_json:
            typer.echo(json.dumps({"decisions": decisions}, indent=2))
            return

        table = Table(title="Override Tag Decisions")
        table.add_column("Resource", style="cyan")
        table.add_column("Type")
        table.add_column("Tag")
        table.add_column("Decision", style="bold")
        table.add_column("Termination")

        styles = {
            OverrideAction.KEEP.value: "green",
            OverrideAction.OVERRIDE.value: "red",
            OverrideAction.DELEGATE.value: "yellow",
        }
        for row in decisions:
            style = styles[row["decision"]]
            table.add_row(
                row["resource_id"],
                row["resource_type"],
                row["tag"] or "-",
                f"[{style}]{row['decision'].upper()}[/{style}]",
                row["termination_date"] or "-",
            )

        console.print(table)

    except typer.Exit:
        raise
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"✗ Invalid resources file: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error evaluating override tags: {e}", style="bold red")
        logger.exception("Error in tags evaluate command")
        raise typer.Exit(code=2)


# Conformity commands group
conformity_app = typer.Typer(help="Cluster conformity record commands")
app.add_typer(conformity_app, name="conformity")


def _load_cluster(name: str, region: str) -> Cluster:
    """Load a cluster record, exiting with a readable error on failure."""
    try:
        return _storage().load(name, region)
    except FileNotFoundError:
        console.print(f"✗ No record for cluster '{name}' in {region}", style="bold red")
        raise typer.Exit(code=1)
    except FieldMapDecodeError as e:
        console.print(f"✗ Corrupt record for cluster '{name}' in {region}: {e}", style="bold red")
        raise typer.Exit(code=1)


@conformity_app.command("show")
def conformity_show(
    cluster_name: str = typer.Argument(..., help="Cluster name"),
    region: str = typer.Option(..., "--region", "-r", help="Cluster region"),
):
    """Show the conformity record of a cluster."""
    try:
        cluster = _load_cluster(cluster_name, region)
        conformity = cluster.cluster_conformity

        if conformity.is_opt_out_of_conformity:
            status = "[yellow]OPTED OUT[/yellow]"
        elif conformity.is_conforming:
            status = "[green]CONFORMING[/green]"
        else:
            status = "[red]NOT CONFORMING[/red]"

        summary = (
            f"[bold]Cluster:[/bold] {cluster.name}\n"
            f"[bold]Region:[/bold] {cluster.region}\n"
            f"[bold]Owner:[/bold] {cluster.owner_email or '-'}\n"
            f"[bold]Updated:[/bold] {format_timestamp(cluster.update_time)}\n"
            f"[bold]Status:[/bold] {status}\n"
            f"[bold]Excluded rules:[/bold] {', '.join(sorted(cluster.excluded_rules)) or '-'}"
        )
        if cluster.is_solo:
            summary += f"\n[bold]Solo instances:[/bold] {len(cluster.solo_instances)}"
        console.print(Panel(summary, title="Cluster Conformity", border_style="cyan"))

        if not conformity.conformities:
            console.print("No conformity rules checked yet.")
            return

        table = Table(title="Rules")
        table.add_column("Rule", style="cyan")
        table.add_column("Result", style="bold")
        table.add_column("Failed Components")

        for rule_id, entry in sorted(conformity.conformities.items()):
            if cluster.is_rule_excluded(rule_id):
                result = "[dim]EXCLUDED[/dim]"
            elif entry.passed:
                result = "[green]PASS[/green]"
            else:
                result = "[red]FAIL[/red]"
            table.add_row(rule_id, result, ", ".join(entry.failed_components) or "-")

        console.print(table)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error showing conformity record: {e}", style="bold red")
        logger.exception("Error in conformity show command")
        raise typer.Exit(code=2)


@conformity_app.command("list")
def conformity_list():
    """List stored cluster records."""
    try:
        storage = _storage()
        records = storage.list_clusters()

        if not records:
            console.print("No cluster records found.")
            return

        table = Table(title="Cluster Records")
        table.add_column("Cluster", style="cyan")
        table.add_column("Region")
        table.add_column("Status", style="bold")
        table.add_column("Updated")

        for name, region in records:
            try:
                cluster = storage.load(name, region)
            except FieldMapDecodeError as e:
                logger.warning("Corrupt record for cluster %s in %s: %s", name, region, e)
                table.add_row(name, region, "[red]CORRUPT[/red]", "-")
                continue

            conformity = cluster.cluster_conformity
            if conformity.is_opt_out_of_conformity:
                status = "[yellow]opted out[/yellow]"
            elif conformity.is_conforming:
                status = "[green]conforming[/green]"
            else:
                status = "[red]not conforming[/red]"
            table.add_row(name, region, status, format_timestamp(cluster.update_time))

        console.print(table)

    except Exception as e:
        console.print(f"✗ Error listing records: {e}", style="bold red")
        logger.exception("Error in conformity list command")
        raise typer.Exit(code=2)


@conformity_app.command("exclude")
def conformity_exclude(
    cluster_name: str = typer.Argument(..., help="Cluster name"),
    region: str = typer.Option(..., "--region", "-r", help="Cluster region"),
    rules: List[str] = typer.Option(..., "--rule", help="Rule id to exclude (repeatable)"),
):
    """Exclude conformity rules from checks of a cluster."""
    try:
        cluster = _load_cluster(cluster_name, region)
        cluster.exclude_rules(*rules)
        _storage().save(cluster)

        console.print(
            f"✓ Excluded rules for [cyan]{cluster.name}[/cyan]: {', '.join(sorted(cluster.excluded_rules))}",
            style="green",
        )

    except typer.Exit:
        raise
    except ValueError as e:
        console.print(f"✗ Invalid rule id: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error excluding rules: {e}", style="bold red")
        logger.exception("Error in conformity exclude command")
        raise typer.Exit(code=2)


@conformity_app.command("opt-out")
def conformity_opt_out(
    cluster_name: str = typer.Argument(..., help="Cluster name"),
    region: str = typer.Option(..., "--region", "-r", help="Cluster region"),
    undo: bool = typer.Option(False, "--undo", help="Opt the cluster back in"),
):
    """Opt a cluster out of conformity enforcement (or back in with --undo)."""
    try:
        cluster = _load_cluster(cluster_name, region)
        cluster.cluster_conformity.set_opt_out_of_conformity(not undo)
        _storage().save(cluster)

        if undo:
            console.print(f"✓ Cluster [cyan]{cluster.name}[/cyan] opted back in", style="green")
        else:
            console.print(f"✓ Cluster [cyan]{cluster.name}[/cyan] opted out of conformity", style="green")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error updating opt-out flag: {e}", style="bold red")
        logger.exception("Error in conformity opt-out command")
        raise typer.Exit(code=2)


@conformity_app.command("export")
def conformity_export(
    cluster_name: str = typer.Argument(..., help="Cluster name"),
    region: str = typer.Option(..., "--region", "-r", help="Cluster region"),
):
    """Print the field-map record of a cluster as JSON."""
    try:
        cluster = _load_cluster(cluster_name, region)
        fields = cluster.to_field_map(include_conformity=True)
        typer.echo(json.dumps(fields, indent=2, sort_keys=True))

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error exporting record: {e}", style="bold red")
        logger.exception("Error in conformity export command")
        raise typer.Exit(code=2)


@conformity_app.command("import")
def conformity_import(
    record_file: Path = typer.Argument(..., help="JSON or YAML file holding a field map"),
):
    """Validate a field-map record and store it."""
    try:
        if not record_file.exists():
            console.print(f"✗ File not found: {record_file}", style="bold red")
            raise typer.Exit(code=1)

        fields = validate_field_map(_load_document(record_file), source=str(record_file))
        cluster = Cluster.from_field_map(fields)
        path = _storage().save(cluster)

        console.print(
            f"✓ Imported record for [cyan]{cluster.name}[/cyan] ({cluster.region}) to {path}",
            style="green",
        )

    except typer.Exit:
        raise
    except FieldMapDecodeError as e:
        console.print(f"✗ Invalid record: {e}", style="bold red")
        raise typer.Exit(code=1)
    except yaml.YAMLError as e:
        console.print(f"✗ Could not parse {record_file}: {e}", style="bold red")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"✗ Error importing record: {e}", style="bold red")
        logger.exception("Error in conformity import command")
        raise typer.Exit(code=2)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
