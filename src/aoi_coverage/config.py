"""
Configuration models and loaders.

Coverage rules and the tracked-satellite catalog are static
configuration, validated once at load time. Files may be JSON or YAML
(chosen by suffix). Any problem is reported as ConfigError.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import logging

import yaml  # type: ignore[import-untyped]
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import ConfigError
from .geo import BoundingBox
from .tle import DEFAULT_TTL_HOURS, TLE_SOURCES

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_RULES_PATH = _PROJECT_ROOT / "config" / "coverage_rules.json"
DEFAULT_SATELLITES_PATH = _PROJECT_ROOT / "config" / "satellites.json"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class CoverageSpec(_ConfigModel):
    """Coverage predicate of one provider. Empty means global coverage."""

    lat_range: Optional[Tuple[float, float]] = Field(default=None, alias="latRange")
    bboxes: List[BoundingBox] = Field(
        default_factory=list,
        validation_alias=AliasChoices("bboxes", "coverageBboxes", "coverage_bboxes"),
    )
    confidence: Confidence = Confidence.MEDIUM
    notes: str = ""

    @field_validator("lat_range")
    @classmethod
    def validate_lat_range(cls, v: Optional[Tuple[float, float]]) -> Optional[Tuple[float, float]]:
        if v is None:
            return v
        min_lat, max_lat = v
        if not -90 <= min_lat <= max_lat <= 90:
            raise ValueError(f"latRange must satisfy -90 <= min <= max <= 90, got {list(v)}")
        return v

    @field_validator("bboxes", mode="before")
    @classmethod
    def coerce_bboxes(cls, v: Any) -> Any:
        if v is None:
            return []
        coerced = []
        for item in v:
            if isinstance(item, BoundingBox):
                box = item
            elif isinstance(item, dict):
                box = BoundingBox.from_dict(item)
            else:
                box = BoundingBox.from_sequence(item)
            coerced.append(box.validate())
        return coerced

    @field_validator("confidence", mode="before")
    @classmethod
    def default_confidence(cls, v: Any) -> Any:
        if v is None or v == "":
            return Confidence.MEDIUM
        return v.lower() if isinstance(v, str) else v

    @field_validator("notes", mode="before")
    @classmethod
    def default_notes(cls, v: Any) -> Any:
        return "" if v is None else v


class CoverageRule(_ConfigModel):
    """Declared coverage of one data provider."""

    name: str
    family: str = ""
    sensors: List[str] = Field(default_factory=list)
    coverage: CoverageSpec = Field(default_factory=CoverageSpec)

    @model_validator(mode="before")
    @classmethod
    def lift_coverage_fields(cls, data: Any) -> Any:
        """Accept confidence/notes/latRange/bboxes at the rule's top level too."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        coverage = dict(data.get("coverage") or {})
        for key in ("confidence", "notes", "latRange", "lat_range", "coverageBboxes", "bboxes"):
            if key in data and key not in coverage:
                coverage[key] = data.pop(key)
        data["coverage"] = coverage
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rule name must not be empty")
        return v.strip()

    @field_validator("sensors", mode="before")
    @classmethod
    def default_sensors(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def sensors_text(self) -> str:
        return ", ".join(self.sensors)


class OpenCollection(_ConfigModel):
    """An open catalog collection probed for existence."""

    key: str
    title: str
    collection: str


class CoverageConfig(_ConfigModel):
    rules: List[CoverageRule] = Field(default_factory=list)
    open_collections: List[OpenCollection] = Field(default_factory=list, alias="openCollections")


class TrackedSatellite(_ConfigModel):
    """A satellite whose passes are estimated."""

    name: str
    tle_name: Optional[str] = Field(default=None, alias="tleName")
    tle_source: str = Field(alias="tleSource")
    swath_km: float = Field(alias="swathKm")

    @field_validator("swath_km")
    @classmethod
    def validate_swath(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"swathKm must be > 0, got {v}")
        return v

    @property
    def lookup_name(self) -> str:
        return self.tle_name or self.name


class SatelliteCatalog(_ConfigModel):
    """Tracked satellites plus the TLE source table they reference."""

    satellites: List[TrackedSatellite] = Field(default_factory=list)
    tle_sources: Dict[str, str] = Field(default_factory=dict, alias="tleSources")
    ttl_hours: float = Field(default=DEFAULT_TTL_HOURS, alias="ttlHours")

    @model_validator(mode="after")
    def check_sources(self) -> "SatelliteCatalog":
        for sat in self.satellites:
            if sat.tle_source not in self.tle_sources and sat.tle_source not in TLE_SOURCES:
                raise ValueError(
                    f"Satellite '{sat.name}' references unknown TLE source '{sat.tle_source}'"
                )
        return self

    def source_url(self, key: str) -> str:
        return self.tle_sources.get(key) or TLE_SOURCES[key]


def _read_config_file(path: Union[str, Path]) -> Any:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read configuration {config_path}: {e}") from e


def parse_coverage_config(data: Any) -> CoverageConfig:
    """Validate a coverage configuration blob (a rule list or a mapping)."""
    if isinstance(data, list):
        data = {"rules": data}
    if not isinstance(data, dict):
        raise ConfigError(f"Coverage configuration must be a list or mapping, got {type(data).__name__}")
    try:
        return CoverageConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid coverage rule configuration: {e}") from e


def parse_satellite_catalog(data: Any) -> SatelliteCatalog:
    """Validate a tracked-satellite configuration blob."""
    if not isinstance(data, dict):
        raise ConfigError(f"Satellite configuration must be a mapping, got {type(data).__name__}")
    try:
        return SatelliteCatalog.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid satellite configuration: {e}") from e


def load_coverage_config(path: Optional[Union[str, Path]] = None) -> CoverageConfig:
    """
    Load coverage rules and open collections.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = path or DEFAULT_RULES_PATH
    config = parse_coverage_config(_read_config_file(config_path))
    logger.info(
        f"Loaded {len(config.rules)} coverage rules and "
        f"{len(config.open_collections)} open collections from {config_path}"
    )
    return config


def load_coverage_rules(path: Optional[Union[str, Path]] = None) -> List[CoverageRule]:
    return load_coverage_config(path).rules


def load_satellite_catalog(path: Optional[Union[str, Path]] = None) -> SatelliteCatalog:
    """
    Load tracked satellites and TLE sources.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = path or DEFAULT_SATELLITES_PATH
    catalog = parse_satellite_catalog(_read_config_file(config_path))
    logger.info(f"Loaded {len(catalog.satellites)} tracked satellites from {config_path}")
    return catalog
