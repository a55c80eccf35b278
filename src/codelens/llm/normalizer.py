"""Response normalization and repair.

Turns raw model text into a valid AnalysisResult in four stages:

1. strip_code_fences: remove Markdown fence markers
2. extract_json_object: keep the outermost {...} span
3. decode_payload: parse JSON, require an object
4. repair_result: field-level defaulting, line validation, summary recompute

normalize() runs all four and never raises. Any decode failure yields a
degraded result carrying a single "parse_error" finding. Summary counts are
always recomputed from the repaired findings; counts reported by the model
are ignored.
"""

import json
import logging
import re
from typing import Any

from codelens.errors import ResponseShapeError
from codelens.llm.client import classify_failure
from codelens.models.result import (
    CONFIDENCE_VALUES,
    DEFAULT_LEVEL,
    DEFAULT_SEVERITY,
    DEFAULT_TYPE,
    LEVELS,
    METRIC_VALUES,
    QUALITY_VALUES,
    SEVERITIES,
    AnalysisResult,
    CodeMetrics,
    Finding,
    Suggestion,
    Summary,
    empty_level_counts,
)

logger = logging.getLogger(__name__)

# ASCII digits only, short enough for int() and any realistic line number
_INT_PATTERN = re.compile(r"[+-]?[0-9]{1,9}")

_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_+#.-]*")

DEFAULT_MESSAGE = "No description provided"
DEFAULT_FIX = "No specific fix provided"
DEFAULT_REASONING = "Improves code quality"
DEFAULT_SUGGESTION_TYPE = "improvement"

RAW_PREVIEW_CHARS = 200


# =============================================================================
# Stages 1-3: text to payload
# =============================================================================


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fence markers (```json, ```) from model output."""
    return _FENCE_PATTERN.sub("", text).strip()


def extract_json_object(text: str) -> str:
    """Return the outermost brace-delimited span of the text.

    Raises:
        ResponseShapeError: If the text has no "{...}" span
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ResponseShapeError("No JSON object found in model response")
    return text[start : end + 1]


def decode_payload(text: str) -> dict[str, Any]:
    """Parse a JSON object.

    Raises:
        ResponseShapeError: If the text is not valid JSON or not an object
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseShapeError(
            f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})"
        ) from e
    except (ValueError, RecursionError) as e:
        raise ResponseShapeError(f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ResponseShapeError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )
    return payload


# =============================================================================
# Field coercion
# =============================================================================


def _as_int(value: Any) -> int | None:
    """Coerce a JSON value to int, or None if it is not integral."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if _INT_PATTERN.fullmatch(text):
            return int(text)
    return None


def _as_text(value: Any, default: str) -> str:
    """Coerce a JSON value to a non-empty string, or the default."""
    if isinstance(value, str):
        return value.strip() or default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _as_choice(value: Any, allowed: frozenset[str] | tuple[str, ...], default: str) -> str:
    """Return the lower-cased value if it is one of the allowed strings."""
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in allowed:
            return candidate
    return default


def source_lines(source_text: str) -> list[str]:
    """Split source into lines the same way line numbers are counted."""
    return source_text.split("\n")


def line_context(lines: list[str], line: int) -> str:
    """Return the given 1-based line with one line either side, numbered."""
    index = line - 1
    if index < 0 or index >= len(lines):
        return ""
    start = max(0, index - 1)
    end = min(len(lines), index + 2)
    return "\n".join(f"{i + 1}: {lines[i]}" for i in range(start, end))


# =============================================================================
# Stage 4: repair
# =============================================================================


def repair_finding(raw: Any, lines: list[str]) -> Finding | None:
    """Validate one reported finding.

    Args:
        raw: Finding object from the model
        lines: Source lines

    Returns:
        Finding, or None when the entry is not an object or its line is not
        within [1, len(lines)]
    """
    if not isinstance(raw, dict):
        return None

    line = _as_int(raw.get("line"))
    if line is None or line < 1 or line > len(lines):
        return None

    column = _as_int(raw.get("column"))
    if column is None or column < 1:
        column = 1

    context = _as_text(raw.get("context"), "") or line_context(lines, line)

    return Finding(
        line=line,
        column=column,
        message=_as_text(raw.get("message"), DEFAULT_MESSAGE),
        severity=_as_choice(raw.get("severity"), SEVERITIES, DEFAULT_SEVERITY),
        type=_as_text(raw.get("type"), DEFAULT_TYPE),
        level=_as_choice(raw.get("level"), LEVELS, DEFAULT_LEVEL),
        context=context,
        word=_as_text(raw.get("word"), ""),
    )


def repair_suggestion(raw: Any) -> Suggestion | None:
    """Fill defaults for one reported suggestion (None if not an object)."""
    if not isinstance(raw, dict):
        return None

    line = _as_int(raw.get("line"))
    if line is None or line < 0:
        line = 0

    return Suggestion(
        line=line,
        type=_as_text(raw.get("type"), DEFAULT_SUGGESTION_TYPE),
        level=_as_choice(raw.get("level"), LEVELS, DEFAULT_LEVEL),
        message=_as_text(raw.get("message"), DEFAULT_MESSAGE),
        fix=_as_text(raw.get("fix"), DEFAULT_FIX),
        reasoning=_as_text(raw.get("reasoning"), DEFAULT_REASONING),
    )


def repair_metrics(raw: Any) -> CodeMetrics:
    """Keep reported metric ratings that are valid, default the rest."""
    defaults = CodeMetrics()
    if not isinstance(raw, dict):
        return defaults

    return CodeMetrics(
        complexity=_as_choice(raw.get("complexity"), METRIC_VALUES, defaults.complexity),
        maintainability=_as_choice(
            raw.get("maintainability"), METRIC_VALUES, defaults.maintainability
        ),
        testability=_as_choice(raw.get("testability"), METRIC_VALUES, defaults.testability),
        performance=_as_choice(raw.get("performance"), METRIC_VALUES, defaults.performance),
        security=_as_choice(raw.get("security"), METRIC_VALUES, defaults.security),
    )


def summarize(
    errors: list[Finding],
    suggestions: list[Suggestion],
    code_quality: str = "fair",
    confidence: str = "medium",
) -> Summary:
    """Derive summary counts from findings and suggestions.

    Findings always carry a known severity and level after repair, so the
    severity buckets and errors_by_level each sum to len(errors).
    """
    severity_counts = {severity: 0 for severity in SEVERITIES}
    errors_by_level = empty_level_counts()
    errors_by_type: dict[str, int] = {}

    for error in errors:
        severity = error.severity if error.severity in severity_counts else DEFAULT_SEVERITY
        level = error.level if error.level in errors_by_level else DEFAULT_LEVEL
        severity_counts[severity] += 1
        errors_by_level[level] += 1
        errors_by_type[error.type] = errors_by_type.get(error.type, 0) + 1

    return Summary(
        total_errors=len(errors),
        critical_errors=severity_counts["critical"],
        high_errors=severity_counts["high"],
        medium_errors=severity_counts["medium"],
        low_errors=severity_counts["low"],
        warnings=len(suggestions),
        code_quality=code_quality,
        errors_by_level=errors_by_level,
        errors_by_type=errors_by_type,
        confidence=confidence,
    )


def repair_result(payload: dict[str, Any], source_text: str) -> AnalysisResult:
    """Build a valid AnalysisResult from a decoded model payload.

    Args:
        payload: Decoded JSON object
        source_text: Analyzed source (for line validation and context)

    Returns:
        AnalysisResult satisfying the summary invariants
    """
    lines = source_lines(source_text)

    raw_errors = payload.get("errors")
    errors: list[Finding] = []
    dropped = 0
    if isinstance(raw_errors, list):
        for raw in raw_errors:
            finding = repair_finding(raw, lines)
            if finding is None:
                dropped += 1
            else:
                errors.append(finding)

    if dropped:
        logger.debug("Dropped %d finding(s) outside lines 1-%d", dropped, len(lines))

    raw_suggestions = payload.get("suggestions")
    suggestions: list[Suggestion] = []
    if isinstance(raw_suggestions, list):
        for raw in raw_suggestions:
            suggestion = repair_suggestion(raw)
            if suggestion is not None:
                suggestions.append(suggestion)

    raw_summary = payload.get("summary")
    if not isinstance(raw_summary, dict):
        raw_summary = {}

    return AnalysisResult(
        errors=errors,
        suggestions=suggestions,
        code_metrics=repair_metrics(payload.get("codeMetrics")),
        summary=summarize(
            errors,
            suggestions,
            code_quality=_as_choice(raw_summary.get("codeQuality"), QUALITY_VALUES, "fair"),
            confidence=_as_choice(raw_summary.get("confidence"), CONFIDENCE_VALUES, "medium"),
        ),
    )


# =============================================================================
# Degraded results
# =============================================================================


def parse_error_result(raw_text: str, error: Exception) -> AnalysisResult:
    """Degraded result for model output that could not be decoded.

    Args:
        raw_text: Model output (a preview is kept in the finding context)
        error: Decode failure

    Returns:
        AnalysisResult with exactly one "parse_error" finding
    """
    errors = [
        Finding(
            line=1,
            column=1,
            word="response",
            type="parse_error",
            level="syntax",
            severity="high",
            message=(
                "Failed to parse AI analysis. This might indicate an issue with the "
                f"AI response format. Error: {error}"
            ),
            context=f"Raw response preview: {raw_text[:RAW_PREVIEW_CHARS]}...",
        )
    ]
    suggestions = [
        Suggestion(
            line=1,
            type="retry_analysis",
            level="syntax",
            message=(
                "The code analysis could not be completed due to a parsing error. "
                "Try analyzing this file again."
            ),
            fix="Re-upload the file or check if the code contains unusual characters",
            reasoning="Parser errors can be temporary or caused by edge cases in the code",
        )
    ]
    return AnalysisResult(
        errors=errors,
        suggestions=suggestions,
        code_metrics=CodeMetrics.unknown(),
        summary=summarize(errors, suggestions, code_quality="unknown", confidence="low"),
        degraded=True,
    )


def provider_error_result(error: Exception, filename: str, language: str) -> AnalysisResult:
    """Degraded result for a generation call that failed terminally.

    Args:
        error: Terminal failure from the LLM client
        filename: Analyzed file name
        language: Detected language

    Returns:
        AnalysisResult whose single finding type is rate_limit,
        quota_exceeded, or api_error
    """
    failure_type = classify_failure(error)
    is_rate_limit = failure_type == "rate_limit"

    if is_rate_limit:
        hint = "Rate limit exceeded. Try again in a few minutes."
    else:
        hint = "Check your API configuration."

    errors = [
        Finding(
            line=1,
            column=1,
            word="api",
            type=failure_type,
            level="syntax",
            severity="medium" if is_rate_limit else "high",
            message=f"Analysis failed: {error}. {hint}",
            context=f"File: {filename}, Language: {language}",
        )
    ]
    suggestions = [
        Suggestion(
            line=1,
            type="configuration_check",
            level="syntax",
            message="Wait before retrying" if is_rate_limit else "Verify API setup",
            fix=(
                "Wait 1-2 minutes before analyzing more files"
                if is_rate_limit
                else "Check the provider API key and quota limits"
            ),
            reasoning="API errors prevent code analysis from completing",
        )
    ]
    return AnalysisResult(
        errors=errors,
        suggestions=suggestions,
        code_metrics=CodeMetrics.unknown(),
        summary=summarize(errors, suggestions, code_quality="unknown", confidence="low"),
        degraded=True,
    )


# =============================================================================
# Entry point
# =============================================================================


def normalize(
    raw_text: str | None,
    source_text: str,
    filename: str,
    language: str,
) -> AnalysisResult:
    """Turn raw model output into a valid AnalysisResult. Never raises.

    Args:
        raw_text: Model output
        source_text: Analyzed source
        filename: Analyzed file name (for logging)
        language: Detected language (for logging)

    Returns:
        Repaired result, or a degraded parse_error result
    """
    text = raw_text if isinstance(raw_text, str) else ""
    cleaned = strip_code_fences(text)

    try:
        payload = decode_payload(extract_json_object(cleaned))
    except ResponseShapeError as e:
        logger.warning("Could not parse analysis for %s (%s): %s", filename, language, e)
        logger.debug("Raw response preview: %s", cleaned[:500])
        return parse_error_result(cleaned, e)

    result = repair_result(payload, source_text)
    logger.debug(
        "Normalized analysis for %s: %d errors, %d suggestions",
        filename,
        len(result.errors),
        len(result.suggestions),
    )
    return result
