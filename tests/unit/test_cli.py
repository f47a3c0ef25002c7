"""
Tests for the CLI module.

Tests Click commands with network-facing classes patched out.
"""

import json
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from aoi_coverage.catalog import CatalogScene
from aoi_coverage.cli import main
from aoi_coverage.errors import FetchError
from aoi_coverage.models import Level, PassResult, PassWindow

BBOX = ['--bbox', '-10', '35', '5', '45']


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def mock_setup_logging():
    """Keep commands from reconfiguring the root logger."""
    with patch('aoi_coverage.cli.setup_logging') as mock_setup:
        yield mock_setup


@pytest.fixture
def rules_file(tmp_path):
    """Two-rule coverage file."""
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "rules": [
            {"name": "Global", "coverage": {"confidence": "high"}},
            {"name": "X", "coverage": {"latRange": [0, 30]}},
        ]
    }))
    return path


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, cli_runner) -> None:
        """Test main command help."""
        result = cli_runner.invoke(main, ['--help'])
        assert result.exit_code == 0
        for command in ('coverage', 'passes', 'scenes', 'list-sources'):
            assert command in result.output

    def test_main_with_log_level(self, cli_runner, mock_setup_logging) -> None:
        """Test main command with log level option."""
        result = cli_runner.invoke(main, ['--log-level', 'DEBUG', 'list-sources'])
        assert result.exit_code == 0
        mock_setup_logging.assert_called_once_with('DEBUG', None)

    def test_list_sources(self, cli_runner) -> None:
        """Test built-in TLE sources are listed."""
        result = cli_runner.invoke(main, ['list-sources'])
        assert result.exit_code == 0
        assert 'celestrak_resource' in result.output

    def test_list_sources_includes_configured_keys(self, cli_runner, tmp_path) -> None:
        """Configured source keys are listed before the built-ins."""
        satellites = tmp_path / "satellites.json"
        satellites.write_text(json.dumps({
            "tleSources": {"mine": "https://tle.example.org/mine.txt"},
            "satellites": [{"name": "A", "tleSource": "mine", "swathKm": 100}],
        }))

        result = cli_runner.invoke(main, ['list-sources', '--satellites', str(satellites)])

        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert lines[0].split() == ['mine', 'https://tle.example.org/mine.txt']
        assert any(line.startswith('celestrak_weather') for line in lines)

    def test_list_sources_default_catalog_keys(self, cli_runner) -> None:
        """Keys used by the shipped satellites file are listed."""
        result = cli_runner.invoke(main, ['list-sources'])
        names = [line.split()[0] for line in result.stdout.splitlines()]
        assert 'resource' in names
        assert 'weather' in names


class TestCoverageCommand:
    """Tests for the coverage command."""

    def test_coverage_rules_only(self, cli_runner, rules_file) -> None:
        """Rule rows are printed as JSON in configuration order."""
        result = cli_runner.invoke(main, ['coverage', *BBOX, '--rules', str(rules_file), '--no-probe'])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [r['name'] for r in rows] == ['Global', 'X']
        assert rows[1]['level'] == 'no'
        assert rows[1]['reason'] == 'Outside stated latitude range (0..30).'

    def test_coverage_with_probe(self, cli_runner, rules_file) -> None:
        """With a period the open catalog probe is consulted."""
        with patch('aoi_coverage.cli.CatalogClient') as mock_client_cls:
            mock_client_cls.return_value.probe_indicators.return_value = []
            result = cli_runner.invoke(main, [
                'coverage', *BBOX, '--rules', str(rules_file),
                '--start', '2024-01', '--end', '2024-03',
            ])

        assert result.exit_code == 0, result.output
        mock_client_cls.return_value.probe_indicators.assert_called_once()

    def test_coverage_table_format(self, cli_runner, rules_file) -> None:
        """Test --format table renders a grid."""
        result = cli_runner.invoke(main, [
            'coverage', *BBOX, '--rules', str(rules_file), '--no-probe', '--format', 'table',
        ])

        assert result.exit_code == 0, result.output
        assert result.stdout.startswith('+')
        assert 'sensorsText' in result.stdout
        assert 'Global' in result.stdout

    def test_coverage_bad_rules_file(self, cli_runner, tmp_path) -> None:
        """Invalid configuration is reported, not silently replaced."""
        bad = tmp_path / "rules.json"
        bad.write_text(json.dumps([{"name": "X", "coverage": {"latRange": [60, 40]}}]))

        result = cli_runner.invoke(main, ['coverage', *BBOX, '--rules', str(bad), '--no-probe'])

        assert result.exit_code != 0
        assert 'Configuration failed to load' in result.output

    def test_coverage_requires_aoi(self, cli_runner) -> None:
        """Test coverage without an AOI."""
        result = cli_runner.invoke(main, ['coverage', '--no-probe'])
        assert result.exit_code != 0

    def test_coverage_invalid_bbox(self, cli_runner) -> None:
        """Test south above north is rejected."""
        result = cli_runner.invoke(main, ['coverage', '--bbox', '0', '50', '10', '40', '--no-probe'])
        assert result.exit_code != 0

    def test_coverage_half_period(self, cli_runner, rules_file) -> None:
        """Test --start without --end."""
        result = cli_runner.invoke(main, ['coverage', *BBOX, '--rules', str(rules_file), '--start', '2024-01'])
        assert result.exit_code != 0

    def test_coverage_geometry_not_an_object(self, cli_runner, rules_file, tmp_path) -> None:
        """A JSON list as the AOI file is a parameter error."""
        geojson = tmp_path / "aoi.geojson"
        geojson.write_text(json.dumps([[-10, 35], [5, 45]]))

        result = cli_runner.invoke(main, [
            'coverage', '--geometry', str(geojson), '--rules', str(rules_file), '--no-probe',
        ])

        assert result.exit_code == 2
        assert '--geometry' in result.output
        assert not isinstance(result.exception, AttributeError)

    def test_coverage_geometry_file(self, cli_runner, rules_file, tmp_path) -> None:
        """The AOI can come from a GeoJSON feature."""
        geojson = tmp_path / "aoi.geojson"
        geojson.write_text(json.dumps({
            "type": "Feature",
            "properties": {},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[[-10, 35], [5, 35], [5, 45], [-10, 45], [-10, 35]]],
            },
        }))

        result = cli_runner.invoke(main, [
            'coverage', '--geometry', str(geojson), '--rules', str(rules_file), '--no-probe',
        ])

        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)) == 2


class TestPassesCommand:
    """Tests for the passes command."""

    def test_passes(self, cli_runner, tmp_path) -> None:
        """Test pass rows are printed."""
        window = PassWindow(datetime(2025, 11, 8, 10, 0), datetime(2025, 11, 8, 10, 5))
        with patch('aoi_coverage.cli.PassPredictor') as mock_predictor_cls:
            mock_predictor_cls.return_value.estimate.return_value = [
                PassResult("Sentinel-2A", Level.OK, "1 pass window(s)", [window], 5.0)
            ]
            result = cli_runner.invoke(main, [
                'passes', *BBOX, '--days', '3', '--start-time', '2025-11-08 00:00:00',
                '--cache-dir', str(tmp_path),
            ])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert rows[0]['windows'] == [{"start": "2025-11-08T10:00:00Z", "end": "2025-11-08T10:05:00Z"}]
        kwargs = mock_predictor_cls.return_value.estimate.call_args.kwargs
        assert kwargs['start_time'] == datetime(2025, 11, 8)
        assert kwargs['horizon_days'] == 3

    def test_passes_bad_start_time(self, cli_runner, tmp_path) -> None:
        """Test unparseable --start-time."""
        result = cli_runner.invoke(main, [
            'passes', *BBOX, '--start-time', 'soon', '--cache-dir', str(tmp_path),
        ])
        assert result.exit_code != 0

    def test_passes_missing_catalog(self, cli_runner, tmp_path) -> None:
        """Test a missing satellites file."""
        result = cli_runner.invoke(main, [
            'passes', *BBOX, '--satellites', str(tmp_path / 'none.json'), '--cache-dir', str(tmp_path),
        ])
        assert result.exit_code != 0
        assert 'Configuration failed to load' in result.output


class TestScenesCommand:
    """Tests for the scenes command."""

    def test_scenes_grouped(self, cli_runner) -> None:
        """Test scenes are grouped and failures only warn."""
        client = MagicMock()
        client.search_scenes.side_effect = [
            [CatalogScene("sentinel-2a", datetime(2024, 1, 5, 10, 0), {"id": "a"})],
            FetchError("https://stac.example.org/search", "timeout"),
        ]
        with patch('aoi_coverage.cli.CatalogClient', return_value=client):
            result = cli_runner.invoke(main, [
                'scenes', *BBOX, '--start', '2024-01', '--end', '2024-03',
                '--collection', 's2', '--collection', 's1',
            ])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert rows == [{
            "satellite": "sentinel-2a",
            "date": "2024-01-05",
            "count": 1,
            "times": ["2024-01-05T10:00:00Z"],
        }]
        assert client.search_scenes.call_count == 2
