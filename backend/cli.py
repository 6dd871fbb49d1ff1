#!/usr/bin/env python3
"""
CLI for the RERA Ingestion Pipeline

Commands:
    ingest     - Run one ingestion synchronously
    upload     - Upload a CSV/JSON file of projects (provenance=ManualUpload)
    generate   - Generate synthetic projects (optionally persist them)
    clear-all  - Delete every stored project
    runs       - Show recent ingestion runs

Usage:
    python cli.py ingest --city Ahmedabad
    python cli.py ingest --all-districts
    python cli.py upload data/rera_export.csv
    python cli.py generate --seed 42 --city Surat --count 25 --persist
    python cli.py clear-all --yes
    python cli.py runs --limit 5
"""

import click
import sys
import json
from collections import Counter


def get_app_context():
    """Get Flask app context for database access."""
    from app import create_app
    app = create_app()
    return app.app_context()


def _echo_counts(title, counts):
    click.secho(title, fg="cyan", bold=True)
    for key, value in sorted(counts.items()):
        click.echo(f"  {key}: {value}")


@click.group()
@click.version_option(version="1.0.0", prog_name="rera-ingestion")
def cli():
    """RERA ingestion CLI - run, upload, generate and inspect project data."""
    pass


@cli.command("ingest")
@click.option("--city", default=None, help="Restrict the run to one city")
@click.option("--all-districts", is_flag=True, help="Crawl every district")
@click.option("--json", "output_json", is_flag=True, help="Output the run as JSON")
def ingest(city, all_districts, output_json):
    """Run one ingestion now and wait for it to finish."""
    with get_app_context():
        from services import ingestion_runner

        try:
            run = ingestion_runner.run_ingestion_sync(city=city, all_districts=all_districts, triggered_by="cli")
        except ingestion_runner.IngestionDisabledError as e:
            click.secho(f"Error: {e}", fg="red")
            sys.exit(1)
        except ingestion_runner.IngestionInProgressError as e:
            click.secho(f"Error: {e}", fg="yellow")
            sys.exit(1)

        data = run.to_dict()
        if output_json:
            click.echo(json.dumps(data, indent=2, default=str))
        else:
            click.echo("=" * 60)
            color = {"Completed": "green", "Partial": "yellow"}.get(data["state"], "red")
            click.secho(f"Run {data['runId']}: {data['state']}", fg=color, bold=True)
            click.echo("=" * 60)
            click.echo(f"Strategy:  {data['strategyUsed']}")
            click.echo(f"Records:   {data['recordCount']}")
            click.echo(f"Inserted:  {data['inserted']}")
            click.echo(f"Updated:   {data['updated']}")
            click.echo(f"Unchanged: {data['unchanged']}")
            click.echo(f"Rejected:  {data['rejected']}")
            if data["provenanceBreakdown"]:
                _echo_counts("Provenance:", data["provenanceBreakdown"])
            if data["error"]:
                click.secho(f"Error: {data['error']}", fg="red")

        if data["state"] == "Failed":
            sys.exit(1)


@cli.command("upload")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def upload(file_path):
    """
    Upload projects from FILE_PATH (CSV or JSON).
    """
    from scrapers.exceptions import ValidationError

    with open(file_path, "rb") as f:
        content = f.read()

    with get_app_context():
        from services.project_upload import upload_projects

        try:
            stats = upload_projects(content, file_path)
        except ValidationError as e:
            click.secho(f"Error: {e}", fg="red")
            sys.exit(1)

    click.echo(f"Rows read: {stats['rows_read']}")
    click.echo(f"Accepted:  {stats['accepted']}")
    click.echo(f"Inserted:  {stats['inserted']}")
    click.echo(f"Updated:   {stats['updated']}")
    click.echo(f"Unchanged: {stats['unchanged']}")
    click.echo(f"Rejected:  {stats['rejected']}")
    _echo_counts("By city:", stats["by_city"])
    for error in stats["errors"]:
        click.secho(f"  - {error}", fg="yellow")


@cli.command("generate")
@click.option("--seed", type=int, default=None, help="Seed for reproducible output")
@click.option("--city", default=None, help="Generate for one city only")
@click.option("--count", type=int, default=None, help="Records for --city (default: its weight)")
@click.option("--persist", is_flag=True, help="Upsert the generated records")
@click.option("--json", "output_json", is_flag=True, help="Print records as JSON")
def generate(seed, city, count, persist, output_json):
    """Generate synthetic projects."""
    from scrapers.synthetic import SyntheticDataGenerator, weights_for_scope

    if count is not None and not city:
        raise click.UsageError("--count requires --city")

    weights = weights_for_scope(city)
    if count is not None:
        weights = {name: count for name in weights}

    records = SyntheticDataGenerator(seed=seed).generate(weights)

    if output_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        click.echo(f"Generated {len(records)} synthetic records")
        _echo_counts("By city:", Counter(r.district for r in records))

    if persist:
        with get_app_context():
            from services.project_repository import ProjectRepository

            counts = ProjectRepository().upsert_batch(records)
        click.secho(
            f"Persisted: {counts['inserted']} inserted, {counts['updated']} updated, "
            f"{counts['unchanged']} unchanged",
            fg="green",
        )


@cli.command("clear-all")
@click.option("--yes", is_flag=True, help="Confirm deletion of every project")
def clear_all(yes):
    """Delete every stored project."""
    if not yes:
        click.secho("Refusing to clear without --yes", fg="red")
        sys.exit(1)

    with get_app_context():
        from services.project_repository import ProjectRepository

        deleted = ProjectRepository().clear_all()
    click.secho(f"Deleted {deleted} projects", fg="yellow")


@cli.command("runs")
@click.option("--limit", type=int, default=10, help="Number of runs to show")
def runs(limit):
    """Show recent ingestion runs."""
    with get_app_context():
        from services.ingestion_runner import list_runs

        recent = [run.to_dict() for run in list_runs(limit)]

    if not recent:
        click.echo("No ingestion runs yet")
        return

    for run in recent:
        click.echo(
            f"{run['startedAt'] or '-':<28} {run['runId'][:8]}  {run['state']:<10} "
            f"{run['strategyUsed'] or '-':<22} {run['recordCount']:>6} records  "
            f"({run['triggeredBy']})"
        )


if __name__ == "__main__":
    cli()
