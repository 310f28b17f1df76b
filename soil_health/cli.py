"""Command-line interface for soil-health-tracker."""

import csv
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.table import Table

from soil_health import __version__
from soil_health.config import get_settings
from soil_health.geocoding import ReverseGeocoder
from soil_health.logging_config import get_logger, setup_logging
from soil_health.models import MeasurementRecord
from soil_health.soil import (
    build_comparison_axes,
    calculate_soil_properties,
    derive_percentages,
    get_pedotransfer_model,
    normalize_for_comparison,
    select_representative_record,
    simulated_country_average,
    summarize_axes,
    unique_locations,
)
from soil_health.soil.locations import location_name
from soil_health.soil.pedotransfer import MODEL_NAMES
from soil_health.soil.series import records_to_frame
from soil_health.storage import parse_documents

console = Console()
logger = get_logger(__name__)


def load_records(input_file: Path) -> list[MeasurementRecord]:
    """Load records from a JSON list of documents or a CSV file with one row per record."""
    if input_file.suffix.lower() == ".json":
        data = json.loads(input_file.read_text())
        if not isinstance(data, list):
            raise ValueError("JSON input must be a list of records")
        documents = data
    else:
        with open(input_file, newline="", encoding="utf-8") as f:
            # Empty CSV cells mean "no value"
            documents = [
                {k: (v if v != "" else None) for k, v in row.items()}
                for row in csv.DictReader(f)
            ]

    records = parse_documents(documents)
    logger.info(f"Loaded {len(records)} records from {input_file}")
    return records


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    raise click.Abort()


@click.group()
@click.version_option(version=__version__, prog_name="soil-health")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Also write logs to this file",
)
def main(log_level: str, log_file: Path | None) -> None:
    """Soil Health Tracker: record, compare and chart soil measurements."""
    setup_logging(
        level=log_level.upper(),
        log_file=str(log_file) if log_file else None,
        enable_file_logging=log_file is not None,
        stream=sys.stderr,
    )
    try:
        get_settings()
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        _fail(f"Invalid configuration: {e}")


@main.command()
@click.argument("sand", type=click.FloatRange(min=0))
@click.argument("clay", type=click.FloatRange(min=0))
@click.argument("silt", type=click.FloatRange(min=0))
def percentages(sand: float, clay: float, silt: float) -> None:
    """Derive composition percentages from settling-test depths.

    SAND, CLAY, SILT: depth of each layer in centimeters
    """
    result = derive_percentages(sand, clay, silt)
    if result is None:
        _fail("At least one measurement (sand, clay or silt) must be provided")

    console.print(f"Sand: {result.sand_percent}%")
    console.print(f"Clay: {result.clay_percent}%")
    console.print(f"Silt: {result.silt_percent}%")
    console.print(f"Texture class: {result.texture_class}")


@main.command()
@click.argument("clay", type=float)
@click.argument("sand", type=float)
@click.option(
    "--model",
    "model_name",
    type=click.Choice(list(MODEL_NAMES)),
    help="Pedotransfer model (default: configured model)",
)
def water(clay: float, sand: float, model_name: str | None) -> None:
    """Estimate water retention from CLAY and SAND percentages."""
    try:
        model = get_pedotransfer_model(model_name)
    except KeyError as e:
        _fail(e.args[0])

    properties = calculate_soil_properties(clay, sand, model)
    if properties is None:
        _fail("Clay and sand must be percentages between 0 and 100")

    table = Table(title=f"Soil properties ({model.name})")
    table.add_column("Property")
    table.add_column("Value", justify="right")
    table.add_row("Wilting point", f"{properties.wilting_point:.2f} %")
    table.add_row("Field capacity", f"{properties.field_capacity:.2f} %")
    table.add_row("Available water", f"{properties.available_water:.2f} %")
    table.add_row("Bulk density", f"{properties.bulk_density:.2f} g/cm³")
    console.print(table)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
def locations(input_file: Path) -> None:
    """List the distinct locations in a records file."""
    try:
        records = load_records(input_file)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading {input_file}: {e}")
        _fail(str(e))

    found = unique_locations(records)
    if not found:
        click.echo("No locations found")
        return

    for location in found:
        click.echo(f"{location.key}\t{location.name}")


def _comparison_payload(
    record: MeasurementRecord, country: str
) -> dict[str, Any]:
    subject = normalize_for_comparison(record)
    reference = simulated_country_average(country)
    axes = build_comparison_axes(subject, reference)
    return {
        "location": location_name(record.location),
        "country": country.upper(),
        "record_id": record.record_id,
        "kind": record.kind.value,
        "timestamp": record.timestamp.isoformat() if record.timestamp else None,
        "axes": [axis.model_dump() for axis in axes],
        "summary": [s.model_dump() for s in summarize_axes(axes)],
    }


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("--location", "location_key", required=True, help="Location key")
@click.option("--country", required=True, help="Country code to compare against")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
def compare(input_file: Path, location_key: str, country: str, as_json: bool) -> None:
    """Compare a location's latest entry with simulated national averages."""
    try:
        records = load_records(input_file)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading {input_file}: {e}")
        _fail(str(e))

    record = select_representative_record(records, location_key)
    if record is None:
        _fail(f"No data found for location {location_key}")

    try:
        payload = _comparison_payload(record, country)
    except KeyError as e:
        _fail(e.args[0])

    if not payload["axes"]:
        _fail("Insufficient data for comparison")

    if as_json:
        click.echo(json.dumps(payload, indent=2))
        return

    table = Table(title=f"{payload['location']} vs {payload['country']} average")
    table.add_column("Metric")
    table.add_column("Location", justify="right")
    table.add_column("Average", justify="right")
    table.add_column("Comparison")
    for summary in payload["summary"]:
        table.add_row(
            summary["label"],
            summary["subject_text"],
            summary["reference_text"],
            summary["verdict"],
        )
    console.print(table)


@main.command(name="table")
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("--output", type=click.Path(path_type=Path), help="Write CSV here")
def table_cmd(input_file: Path, output: Path | None) -> None:
    """Show records as a table, newest first, or export them to CSV."""
    try:
        records = load_records(input_file)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading {input_file}: {e}")
        _fail(str(e))

    df = records_to_frame(records)
    if output:
        df.to_csv(output, index=False)
        click.echo(f"Wrote {len(df)} records to {output}")
    elif df.empty:
        click.echo("No records")
    else:
        click.echo(df.drop(columns=["record_id", "location_key"]).to_string(index=False))


@main.command()
@click.argument("latitude", type=click.FloatRange(-90, 90))
@click.argument("longitude", type=click.FloatRange(-180, 180))
def geocode(latitude: float, longitude: float) -> None:
    """Look up country, region and city for a GPS fix."""
    details = ReverseGeocoder().lookup(latitude, longitude)
    if details is None:
        _fail(f"No location details for ({latitude}, {longitude})")
    click.echo(json.dumps(details.model_dump(), indent=2))


if __name__ == "__main__":
    main()
