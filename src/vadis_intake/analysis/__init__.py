from vadis_intake.analysis.aggregator import AnalysisAggregator, MergePolicy
from vadis_intake.analysis.features import FeatureInfo, describe, parse_feature_keys
from vadis_intake.analysis.watcher import AnalysisWatcher

__all__ = [
    "AnalysisAggregator",
    "AnalysisWatcher",
    "FeatureInfo",
    "MergePolicy",
    "describe",
    "parse_feature_keys",
]
