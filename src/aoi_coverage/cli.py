"""
Command-line interface for the AOI coverage and pass estimator.

Every command prints its result rows on stdout, as JSON or as a grid
table (--format table); logging goes to stderr.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json
import logging

import click
from tabulate import tabulate

from .aggregation import build_coverage_index, to_rows
from .cache import FileCache
from .catalog import OPEN_COLLECTIONS, CatalogClient, group_scenes
from .config import load_coverage_config, load_satellite_catalog
from .errors import ConfigError, FetchError
from .geo import BoundingBox, bbox_from_geometry
from .models import TimeWindow
from .predictor import DEFAULT_HORIZON_DAYS, PassPredictor
from .tle import TLE_SOURCES, TLEStore
from .utils import parse_datetime, setup_logging

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "aoi-coverage"


def _resolve_aoi(
    bbox: Optional[Tuple[float, float, float, float]],
    geometry_file: Optional[str],
) -> Tuple[BoundingBox, Optional[Dict[str, Any]]]:
    """AOI from --bbox or a GeoJSON file; the file wins when both are given."""
    if geometry_file:
        try:
            with open(geometry_file, "r", encoding="utf-8") as f:
                geojson = json.load(f)
            if not isinstance(geojson, dict):
                raise ValueError(f"GeoJSON must be an object, got {type(geojson).__name__}")
            aoi = bbox_from_geometry(geojson).validate()
        except (OSError, ValueError) as e:
            raise click.BadParameter(str(e), param_hint="--geometry")
        geometry = geojson.get("geometry") if geojson.get("type") == "Feature" else geojson
        if not isinstance(geometry, dict) or geometry.get("type") not in ("Polygon", "MultiPolygon"):
            geometry = None
        return aoi, geometry

    if bbox is None:
        raise click.UsageError("Set an AOI with --bbox WEST SOUTH EAST NORTH or --geometry FILE")
    try:
        return BoundingBox.from_sequence(bbox).validate(), None
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--bbox")


def _resolve_time_window(start: Optional[str], end: Optional[str]) -> Optional[TimeWindow]:
    if not start and not end:
        return None
    if not (start and end):
        raise click.UsageError("--start and --end must be given together")
    try:
        return TimeWindow.from_month_range(start, end)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--start/--end")


def _cell(value: Any) -> Any:
    if isinstance(value, list):
        return "\n".join(str(_cell(v)) for v in value)
    if isinstance(value, dict) and "start" in value:
        return f"{value['start']} - {value['end']}"
    return value


def _echo_rows(rows: List[Dict[str, Any]], output_format: str = "json") -> None:
    if output_format == "table":
        table = [{key: _cell(value) for key, value in row.items()} for row in rows]
        click.echo(tabulate(table, headers="keys", tablefmt="grid"))
    else:
        click.echo(json.dumps(rows, indent=2))


aoi_options = [
    click.option('--bbox', type=float, nargs=4, default=None,
                 metavar='WEST SOUTH EAST NORTH', help='AOI bounding box in degrees'),
    click.option('--geometry', 'geometry_file', type=click.Path(exists=True),
                 help='GeoJSON file with the AOI polygon'),
]

format_option = click.option('--format', 'output_format', default='json',
                             type=click.Choice(['json', 'table']),
                             help='Output format (default: json)')


def with_aoi(func: Any) -> Any:
    for option in reversed(aoi_options):
        func = option(func)
    return func


@click.group()
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Set logging level')
@click.option('--log-file', type=click.Path(), help='Log file path')
def main(log_level: str, log_file: Optional[str]) -> None:
    """AOI Coverage Estimator - archive coverage index and pass prediction (reference only)."""
    setup_logging(log_level, log_file)


@main.command()
@with_aoi
@format_option
@click.option('--start', help='Start month (YYYY-MM)')
@click.option('--end', help='End month (YYYY-MM)')
@click.option('--rules', 'rules_path', type=click.Path(),
              help='Coverage rules file (JSON or YAML)')
@click.option('--probe/--no-probe', default=True,
              help='Probe the open catalog for existing items (needs --start/--end)')
@click.option('--endpoint', default=None, help='STAC API endpoint for the probe')
def coverage(
    bbox: Optional[Tuple[float, float, float, float]],
    geometry_file: Optional[str],
    output_format: str,
    start: Optional[str],
    end: Optional[str],
    rules_path: Optional[str],
    probe: bool,
    endpoint: Optional[str],
) -> None:
    """Run the archive coverage index for an AOI.

    Example:
    coverage --bbox -10 35 5 45 --start 2024-01 --end 2024-03
    """
    aoi, geometry = _resolve_aoi(bbox, geometry_file)
    time_window = _resolve_time_window(start, end)

    try:
        config = load_coverage_config(rules_path)
    except ConfigError as e:
        raise click.ClickException(f"Configuration failed to load: {e}")

    prober = None
    if probe and time_window is not None:
        prober = CatalogClient(endpoint) if endpoint else CatalogClient()

    indicators = build_coverage_index(
        config.rules,
        aoi,
        time_window=time_window,
        prober=prober,
        collections=config.open_collections or None,
        geometry=geometry,
    )
    _echo_rows(to_rows(indicators), output_format)


@main.command()
@with_aoi
@format_option
@click.option('--days', default=DEFAULT_HORIZON_DAYS, type=click.IntRange(min=1),
              help=f'Prediction horizon in days (default: {DEFAULT_HORIZON_DAYS})')
@click.option('--start-time', type=str,
              help='Start time (YYYY-MM-DD HH:MM:SS UTC, default: now)')
@click.option('--step', default=60, type=click.IntRange(min=1),
              help='Sampling step in seconds (default: 60)')
@click.option('--satellites', 'satellites_path', type=click.Path(),
              help='Tracked satellites file (JSON or YAML)')
@click.option('--cache-dir', type=click.Path(), default=str(DEFAULT_CACHE_DIR),
              help='Directory for cached TLE text')
def passes(
    bbox: Optional[Tuple[float, float, float, float]],
    geometry_file: Optional[str],
    output_format: str,
    days: int,
    start_time: Optional[str],
    step: int,
    satellites_path: Optional[str],
    cache_dir: str,
) -> None:
    """Estimate upcoming pass windows of tracked satellites over an AOI."""
    aoi, _ = _resolve_aoi(bbox, geometry_file)

    start_dt = None
    if start_time:
        try:
            start_dt = parse_datetime(start_time)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--start-time")

    try:
        catalog = load_satellite_catalog(satellites_path)
    except ConfigError as e:
        raise click.ClickException(f"Configuration failed to load: {e}")

    predictor = PassPredictor(TLEStore(FileCache(cache_dir)), catalog, step_seconds=step)
    results = predictor.estimate(aoi, start_time=start_dt, horizon_days=days)
    _echo_rows(to_rows(results), output_format)


@main.command()
@with_aoi
@format_option
@click.option('--start', help='Start month (YYYY-MM)')
@click.option('--end', help='End month (YYYY-MM)')
@click.option('--collection', 'collection_keys', multiple=True,
              type=click.Choice([c.key for c in OPEN_COLLECTIONS]),
              help='Open collection to search (repeatable, default: all)')
@click.option('--limit', default=200, type=click.IntRange(min=1),
              help='Maximum items per collection (default: 200)')
@click.option('--endpoint', default=None, help='STAC API endpoint')
def scenes(
    bbox: Optional[Tuple[float, float, float, float]],
    geometry_file: Optional[str],
    output_format: str,
    start: Optional[str],
    end: Optional[str],
    collection_keys: Tuple[str, ...],
    limit: int,
    endpoint: Optional[str],
) -> None:
    """List open-archive scenes grouped by satellite and date."""
    aoi, geometry = _resolve_aoi(bbox, geometry_file)
    time_window = _resolve_time_window(start, end)
    client = CatalogClient(endpoint) if endpoint else CatalogClient()

    selected = [c for c in OPEN_COLLECTIONS if not collection_keys or c.key in collection_keys]
    found = []
    for collection in selected:
        try:
            found.extend(client.search_scenes(collection, aoi, time_window, geometry, limit=limit))
        except FetchError as e:
            logger.warning(f"Scene search in {collection.collection} failed: {e}")
            click.echo(f"Warning: {collection.title} search failed: {e.reason}", err=True)

    _echo_rows(to_rows(group_scenes(found)), output_format)


@main.command('list-sources')
@click.option('--satellites', 'satellites_path', type=click.Path(),
              help='Tracked satellites file (JSON or YAML)')
def list_sources(satellites_path: Optional[str]) -> None:
    """List TLE data sources: configured keys first, then built-ins."""
    try:
        catalog = load_satellite_catalog(satellites_path)
    except ConfigError as e:
        raise click.ClickException(f"Configuration failed to load: {e}")

    sources = dict(catalog.tle_sources)
    for name, url in TLE_SOURCES.items():
        sources.setdefault(name, url)
    for name, url in sources.items():
        click.echo(f"{name:20s} {url}")


if __name__ == '__main__':
    main()
