"""
Prediction routes.

POST /predictions                 create or revise the caller's prediction
GET  /predictions                 the caller's predictions with summary stats
GET  /predictions/leaderboard     top users by rank
POST /predictions/update-results  settle predictions for finished matches (operator)
"""
import logging
from typing import Dict, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from matchday.core.auth import get_current_user_id, require_admin_token
from matchday.core.database import get_db
from matchday.core.rate_limit import PREDICTION_SUBMIT_LIMIT, limiter
from matchday.models import Prediction, UserStats
from matchday.services.prediction_service import (
    InvalidPredictionError,
    MatchNotFoundError,
    PredictionService,
)
from matchday.services.settlement import SettlementService
from matchday.utils.timezone import isoformat_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictions", tags=["predictions"])


class PredictionCreate(BaseModel):
    """Prediction submission body."""
    matchId: str = Field(..., min_length=1)
    prediction: Literal["local", "empate", "visitante"]
    homeScore: Optional[int] = Field(None, ge=0)
    awayScore: Optional[int] = Field(None, ge=0)


def get_prediction_service(db: Session = Depends(get_db)) -> PredictionService:
    return PredictionService(db)


def get_settlement_service(db: Session = Depends(get_db)) -> SettlementService:
    return SettlementService(db)


def prediction_to_dict(pred: Prediction, include_match: bool = False) -> dict:
    """Convert Prediction model to dictionary."""
    data = {
        "id": pred.id,
        "user_id": pred.user_id,
        "match_id": pred.match_id,
        "predicted_home_score": pred.predicted_home_score,
        "predicted_away_score": pred.predicted_away_score,
        "confidence": pred.confidence,
        "is_correct": pred.is_correct,
        "points_earned": pred.points_earned,
        "created_at": isoformat_utc(pred.created_at),
        "updated_at": isoformat_utc(pred.updated_at),
    }
    if include_match:
        match = pred.match
        data["match"] = {
            "id": match.id,
            "home_team": match.home_team,
            "away_team": match.away_team,
            "home_score": match.home_score,
            "away_score": match.away_score,
            "status": match.status,
            "match_date": isoformat_utc(match.match_date),
            "league": match.league,
        } if match is not None else None
    return data


def user_stats_to_dict(stats: UserStats) -> dict:
    return {
        "rank": stats.rank_position,
        "userId": stats.user_id,
        "totalPredictions": stats.total_predictions,
        "correctPredictions": stats.correct_predictions,
        "accuracy": stats.accuracy_percentage,
        "totalPoints": stats.total_points,
    }


@router.post("")
@limiter.limit(PREDICTION_SUBMIT_LIMIT)
async def submit_prediction(
    request: Request,
    body: PredictionCreate,
    user_id: str = Depends(get_current_user_id),
    service: PredictionService = Depends(get_prediction_service)
) -> Dict:
    """
    Save the caller's prediction for an upcoming match.

    Without ``homeScore``/``awayScore`` the outcome is stored as 1-0, 0-0 or
    0-1. Submitting again for the same match replaces the scores.
    """
    try:
        prediction = service.submit(
            user_id,
            body.matchId,
            body.prediction,
            home_score=body.homeScore,
            away_score=body.awayScore,
        )
    except MatchNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidPredictionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"success": True, "prediction": prediction_to_dict(prediction)}


@router.get("")
async def list_predictions(
    user_id: str = Depends(get_current_user_id),
    service: PredictionService = Depends(get_prediction_service)
) -> Dict:
    """The caller's predictions, newest first, with accuracy and points."""
    predictions, stats = service.list_for_user(user_id)
    return {
        "predictions": [prediction_to_dict(p, include_match=True) for p in predictions],
        "stats": stats,
    }


@router.get("/leaderboard")
async def get_leaderboard(
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: PredictionService = Depends(get_prediction_service)
) -> Dict:
    """Top users ordered by rank (points, then correct predictions)."""
    entries = service.leaderboard(limit)
    return {
        "leaderboard": [user_stats_to_dict(s) for s in entries],
        "count": len(entries),
    }


@router.post("/update-results", dependencies=[Depends(require_admin_token)])
async def update_results(
    service: SettlementService = Depends(get_settlement_service)
) -> Dict:
    """
    Settle every unsettled prediction whose match has finished with a score.

    Safe to call repeatedly and concurrently; already settled predictions
    are reported as skipped.
    """
    result = service.run()
    return {
        "success": True,
        "message": (
            f"Processed {result.processed_matches} finished matches: "
            f"{result.settled} predictions settled"
        ),
        **result.to_dict(),
    }
