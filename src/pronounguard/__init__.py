"""Pronoun mismatch detection and correction for chat text."""

from .config import CorrectionMode, EngineConfig, load_config
from .directory import PronounCache, PronounDirectory
from .engine import Analysis, EngineResult, EngineStats, PronounCorrectionEngine
from .resolver import (
    AllCorrect,
    Aggregation,
    BelowThreshold,
    CorrectionOutcome,
    Corrections,
    MismatchDecision,
    MismatchResolver,
    NoPronouns,
    NotApplicable,
    UnparseableLabel,
)
from .rewriter import AppliedEdit, RewriteResult, apply_corrections
from .scanner import ScanOptions, ScanResult, scan
from .tracking import DuplicateSettings, WindowedDuplicateTracker

__all__ = [
    "Aggregation",
    "AllCorrect",
    "Analysis",
    "AppliedEdit",
    "BelowThreshold",
    "CorrectionMode",
    "CorrectionOutcome",
    "Corrections",
    "DuplicateSettings",
    "EngineConfig",
    "EngineResult",
    "EngineStats",
    "MismatchDecision",
    "MismatchResolver",
    "NoPronouns",
    "NotApplicable",
    "PronounCache",
    "PronounCorrectionEngine",
    "PronounDirectory",
    "RewriteResult",
    "ScanOptions",
    "ScanResult",
    "UnparseableLabel",
    "WindowedDuplicateTracker",
    "apply_corrections",
    "load_config",
    "scan",
]
