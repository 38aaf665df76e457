"""Evidence loading, per-screen scoring and batch summaries."""

from .aggregator import ScoreAggregator
from .evidence import EVIDENCE_FILES, EvidenceLoader, ScreenEvidence
from .summary import BatchSummarizer

__all__ = ["BatchSummarizer", "EVIDENCE_FILES", "EvidenceLoader", "ScoreAggregator", "ScreenEvidence"]
