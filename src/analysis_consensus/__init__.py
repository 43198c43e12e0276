"""Analysis Consensus Engine.

Reconciles noisy classification results into a single consensus, falls
back to safe defaults on low confidence, caches results and ranks
architecture patterns against the consensus.
"""

from .cache import ResultCache
from .catalog import CatalogLoadError, load_catalog
from .combiner import ResultCombiner
from .fallback import FallbackResolver
from .pattern_scorer import PatternScorer, ScoringWeights
from .processor import AnalysisProcessor
from .schema import ClassificationResult, ProcessedResult, ValidationReport
from .validator import ResultValidator

__version__ = "1.0.0"

__all__ = [
    "AnalysisProcessor",
    "CatalogLoadError",
    "ClassificationResult",
    "FallbackResolver",
    "PatternScorer",
    "ProcessedResult",
    "ResultCache",
    "ResultCombiner",
    "ResultValidator",
    "ScoringWeights",
    "ValidationReport",
    "load_catalog",
]
