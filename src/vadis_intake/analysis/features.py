"""Static description of the analysis features and their endpoints.

``describe`` matches every ``FeatureKey`` explicitly; adding a member without
a branch is reported by type checkers through ``assert_never``.
"""

from typing import Any, NamedTuple, assert_never

from vadis_intake.contracts.analysis import FeatureKey

FEATURE_ENDPOINT_PREFIX = "script-analysis"


class FeatureInfo(NamedTuple):
    title: str
    description: str
    estimated_time: str
    snapshot_field: str


def describe(feature: FeatureKey) -> FeatureInfo:
    """Return display metadata and the aggregated-read field name for a feature."""
    match feature:
        case FeatureKey.SCENE_EXTRACTION:
            return FeatureInfo(
                "Scene Extraction & Breakdown",
                "Extract and analyze individual scenes from the script",
                "2-3 min",
                "scenes",
            )
        case FeatureKey.CHARACTER_ANALYSIS:
            return FeatureInfo(
                "Character Analysis",
                "Analyze characters and their relationships",
                "3-4 min",
                "characters",
            )
        case FeatureKey.CASTING_SUGGESTIONS:
            return FeatureInfo(
                "Casting Suggestions",
                "Actor recommendations for each character",
                "4-5 min",
                "casting",
            )
        case FeatureKey.LOCATION_ANALYSIS:
            return FeatureInfo(
                "Location Analysis",
                "Identify filming locations and logistics",
                "3-4 min",
                "locations",
            )
        case FeatureKey.VFX_ANALYSIS:
            return FeatureInfo(
                "VFX Requirements",
                "Analyze visual effects needs and complexity",
                "3-4 min",
                "vfx",
            )
        case FeatureKey.PRODUCT_PLACEMENT:
            return FeatureInfo(
                "Product Placement",
                "Identify brand integration opportunities",
                "2-3 min",
                "productPlacement",
            )
        case FeatureKey.FINANCIAL_PLANNING:
            return FeatureInfo(
                "Financial Planning",
                "Budget estimation and revenue projections",
                "4-5 min",
                "financial",
            )
        case FeatureKey.PROJECT_SUMMARY:
            return FeatureInfo(
                "Project Summary",
                "Comprehensive reader's report and summary",
                "3-4 min",
                "summary",
            )
        case _:
            assert_never(feature)


def feature_path(feature: FeatureKey) -> str:
    """API path (without the /api prefix) that runs one feature."""
    return f"{FEATURE_ENDPOINT_PREFIX}/{feature.value}"


def unwrap_payload(body: Any) -> Any:
    """Feature endpoints answer either ``{"data": ...}`` or the payload itself."""
    if isinstance(body, dict) and body.get("data") is not None:
        return body["data"]
    return body


def parse_snapshot(body: Any) -> dict[FeatureKey, Any]:
    """Map an aggregated analysis response onto feature keys.

    Accepts both feature-keyed bodies and the backend's short field names
    (``scenes``, ``vfx``, ...). Null or missing fields mean "not run".
    """
    if not isinstance(body, dict):
        return {}

    snapshot: dict[FeatureKey, Any] = {}
    for feature in FeatureKey:
        value = body.get(feature.value)
        if value is None:
            value = body.get(describe(feature).snapshot_field)
        if value is not None:
            snapshot[feature] = value
    return snapshot


def parse_feature_keys(values: list[str]) -> list[FeatureKey]:
    """Convert user-provided names to feature keys, preserving order and dropping duplicates.

    Raises:
        ValueError: If a name is not a known feature.
    """
    keys: list[FeatureKey] = []
    for value in values:
        try:
            key = FeatureKey(value.strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in FeatureKey)
            raise ValueError(
                f"Unknown analysis feature '{value}'. Valid features: {valid}"
            ) from None
        if key not in keys:
            keys.append(key)
    return keys
