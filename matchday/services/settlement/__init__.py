"""Prediction settlement: scoring rules and the settlement run."""
from matchday.services.settlement.scoring import (
    Outcome,
    Score,
    classify_outcome,
    score_prediction,
)
from matchday.services.settlement.settlement_service import SettlementResult, SettlementService

__all__ = [
    "Outcome",
    "Score",
    "classify_outcome",
    "score_prediction",
    "SettlementResult",
    "SettlementService",
]
