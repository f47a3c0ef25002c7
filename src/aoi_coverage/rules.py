"""
Rule-based archive coverage evaluation.

Each configured provider rule is scored against the AOI bounding box,
producing one leveled CoverageIndicator per rule.
"""

from typing import List, Optional
import logging
import threading

from .config import Confidence, CoverageRule
from .geo import BoundingBox, bbox_center, bbox_intersects
from .models import CoverageIndicator, Level

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Reference-only coverage estimate; verify in provider catalog."
NO_OVERLAP_REASON = "No overlap with stated coverage regions."
RULE_NOTE = "Rule-based estimate from declared provider coverage; not a guarantee of archived imagery."


def _fmt(value: float) -> str:
    return f"{value:g}"


def evaluate_rule(rule: CoverageRule, aoi: BoundingBox) -> CoverageIndicator:
    """
    Score one provider rule against an AOI.

    Checks run in order and the first failing check decides the row:
    latitude range of the AOI center, then overlap with any declared
    coverage box, then declared confidence (high -> ok, otherwise warn).

    Args:
        rule: Provider coverage rule
        aoi: AOI bounding box

    Returns:
        CoverageIndicator for the rule
    """
    coverage = rule.coverage

    def row(level: Level, reason: str) -> CoverageIndicator:
        return CoverageIndicator(
            name=rule.name,
            family=rule.family,
            sensors_text=rule.sensors_text,
            level=level,
            reason=reason,
            note=RULE_NOTE,
        )

    if coverage.lat_range is not None:
        min_lat, max_lat = coverage.lat_range
        center_lat, _ = bbox_center(aoi)
        if not min_lat <= center_lat <= max_lat:
            return row(Level.NO, f"Outside stated latitude range ({_fmt(min_lat)}..{_fmt(max_lat)}).")

    if coverage.bboxes and not any(bbox_intersects(aoi, box) for box in coverage.bboxes):
        return row(Level.NO, NO_OVERLAP_REASON)

    level = Level.OK if coverage.confidence is Confidence.HIGH else Level.WARN
    return row(level, coverage.notes.strip() or DEFAULT_REASON)


def evaluate_rules(
    rules: List[CoverageRule],
    aoi: BoundingBox,
    cancel_event: Optional[threading.Event] = None,
) -> List[CoverageIndicator]:
    """
    Evaluate every rule, in configuration order.

    A failure inside one rule degrades that row to warn; it never stops
    the remaining rules.
    """
    indicators = []
    for rule in rules:
        if cancel_event is not None and cancel_event.is_set():
            indicators.append(
                CoverageIndicator(
                    name=rule.name,
                    family=rule.family,
                    sensors_text=rule.sensors_text,
                    level=Level.WARN,
                    reason="Evaluation cancelled.",
                    note=RULE_NOTE,
                )
            )
            continue
        try:
            indicators.append(evaluate_rule(rule, aoi))
        except Exception as e:
            logger.warning(f"Rule '{rule.name}' could not be evaluated: {e}")
            indicators.append(
                CoverageIndicator(
                    name=rule.name,
                    family=rule.family,
                    sensors_text=rule.sensors_text,
                    level=Level.WARN,
                    reason=DEFAULT_REASON,
                    note=RULE_NOTE,
                )
            )

    counts = {level: sum(1 for i in indicators if i.level is level) for level in Level}
    logger.info(
        f"Evaluated {len(indicators)} coverage rules: "
        f"{counts[Level.OK]} ok, {counts[Level.WARN]} warn, {counts[Level.NO]} no"
    )
    return indicators
