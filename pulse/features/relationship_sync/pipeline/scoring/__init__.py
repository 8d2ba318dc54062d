"""
Relationship scoring package.

Scores contacts from their interaction history and persists score and label.
"""

from .service import ScoreResult, ScoringService, compute_score, derive_scoring_inputs, risk_label_for

__all__ = ["ScoreResult", "ScoringService", "compute_score", "derive_scoring_inputs", "risk_label_for"]
