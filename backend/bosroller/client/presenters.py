"""View models for the analysis results screen and the video list."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from bosroller.core.constants import SCORE_HIGH_THRESHOLD, SCORE_MEDIUM_THRESHOLD
from bosroller.schemas.video_analysis import AnalysisData

RESULT_TABS = ("overview", "hook", "practices", "improvements", "suggestions")

_TIME_RE = re.compile(r"(\d+):(\d+)")
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def score_band(score: Optional[float]) -> str:
    """green / orange / red for the virality score."""
    if score is None:
        return "red"
    if score >= SCORE_HIGH_THRESHOLD:
        return "green"
    if score >= SCORE_MEDIUM_THRESHOLD:
        return "orange"
    return "red"


def parse_time_range(time_range: Optional[str]) -> int:
    """Seconds at the start of a "m:ss-m:ss" range; 0 when there is no m:ss in it."""
    match = _TIME_RE.search(time_range or "")
    if not match:
        return 0
    return int(match.group(1)) * 60 + int(match.group(2))


def format_file_size(size: Optional[int]) -> str:
    if not size:
        return "0 Bytes"
    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size / (1024 ** exponent), 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def format_duration(seconds: Optional[float]) -> str:
    total = int(seconds or 0)
    return f"{total // 60}:{total % 60:02d}"


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass
class Improvement:
    time_range: str
    start_seconds: int
    problem: str
    suggested_change: str
    expected_impact: str


@dataclass
class ResultsView:
    score: Optional[float]
    score_band: str
    verdict: str
    confidence: str
    primary_risk: Optional[str]
    tabs: List[str] = field(default_factory=lambda: list(RESULT_TABS))
    overview: Dict[str, Any] = field(default_factory=dict)
    hook: Dict[str, Any] = field(default_factory=dict)
    practices: List[Dict[str, Any]] = field(default_factory=list)
    improvements: List[Improvement] = field(default_factory=list)
    suggestions: Dict[str, List[str]] = field(default_factory=dict)


def build_results_view(analysis_data: Union[AnalysisData, Dict[str, Any], None]) -> Optional[ResultsView]:
    """Flatten the workflow's result document for display; None when there is nothing to show.

    Sections missing from the document, or of the wrong shape, come out empty.
    """
    if analysis_data is None:
        return None
    if isinstance(analysis_data, AnalysisData):
        analysis_data = analysis_data.model_dump()
    if not isinstance(analysis_data, dict) or not analysis_data:
        return None

    virality = _dict(analysis_data.get("viralityEvaluation"))
    hook = _dict(analysis_data.get("hookEvaluation"))
    strength = hook.get("hookStrength")
    retention = _dict(analysis_data.get("retentionAnalysis"))
    loop = _dict(analysis_data.get("loopabilityAnalysis"))
    rewrites = _dict(analysis_data.get("safeRewriteSuggestions"))
    output = _dict(analysis_data.get("output"))

    score = virality.get("viralityScore")
    return ResultsView(
        score=score,
        score_band=score_band(score if isinstance(score, (int, float)) else None),
        verdict=virality.get("overallVerdict") or "",
        confidence=virality.get("confidenceLevel") or "",
        primary_risk=virality.get("primaryRisk") or None,
        overview={
            "early_drop_off_risk": retention.get("earlyDropOffRisk"),
            "pacing_quality": retention.get("pacingQuality"),
            "structure_issues": _list(retention.get("structureIssues")),
            "loop_present": bool(loop.get("loopPresent")),
            "loop_potential": loop.get("loopPotential"),
            "loop_recommendation": loop.get("recommendation"),
            "priority_actions": _list(output.get("topThreePriorityActions")),
        },
        hook={
            "present_first_2_seconds": bool(hook.get("hookPresentFirst2Seconds")),
            "strength": strength.upper() if isinstance(strength, str) else "",
            "reasoning": hook.get("reasoning") or "",
        },
        practices=[
            {"practice": p.get("practice"), "met": bool(p.get("met")), "notes": p.get("notes")}
            for p in _list(analysis_data.get("bestPracticeComparison")) if isinstance(p, dict)
        ],
        improvements=[
            Improvement(
                time_range=i.get("timeRange") or "",
                start_seconds=parse_time_range(i.get("timeRange")),
                problem=i.get("problem") or "",
                suggested_change=i.get("suggestedChange") or "",
                expected_impact=i.get("expectedImpact") or "",
            )
            for i in _list(analysis_data.get("timestampedImprovements")) if isinstance(i, dict)
        ],
        suggestions={
            "hook_alternatives": _list(rewrites.get("hookAlternatives")),
            "cta_suggestions": _list(rewrites.get("ctaSuggestions")),
        },
    )
