"""
Outcome classification and prediction scoring.

Points:
- wrong outcome: 0
- correct outcome (home win / draw / away win): POINTS_CORRECT_OUTCOME
- exact scoreline: POINTS_CORRECT_OUTCOME + POINTS_EXACT_SCORE_BONUS
"""
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

POINTS_CORRECT_OUTCOME = 3
POINTS_EXACT_SCORE_BONUS = 1


class Outcome(str, Enum):
    HOME_WIN = "home_win"
    DRAW = "draw"
    AWAY_WIN = "away_win"


# User-facing outcome choices as submitted by the app
PREDICTION_CHOICES = {
    "local": Outcome.HOME_WIN,
    "empate": Outcome.DRAW,
    "visitante": Outcome.AWAY_WIN,
}

# Scoreline stored when a user picks an outcome without a score
DEFAULT_SCORELINES = {
    Outcome.HOME_WIN: (1, 0),
    Outcome.DRAW: (0, 0),
    Outcome.AWAY_WIN: (0, 1),
}


@dataclass(frozen=True)
class Score:
    is_correct: bool
    points: int


def classify_outcome(home: int, away: int) -> Outcome:
    if home > away:
        return Outcome.HOME_WIN
    if home < away:
        return Outcome.AWAY_WIN
    return Outcome.DRAW


def default_scoreline(outcome: Outcome) -> Tuple[int, int]:
    return DEFAULT_SCORELINES[outcome]


def score_prediction(
    predicted_home: int,
    predicted_away: int,
    actual_home: int,
    actual_away: int,
) -> Score:
    """
    Score a predicted scoreline against the final result.

    Examples:
        2-1 predicted, 3-0 final → Score(True, 3)
        1-1 predicted, 1-1 final → Score(True, 4)
        0-1 predicted, 1-0 final → Score(False, 0)
    """
    if classify_outcome(predicted_home, predicted_away) != classify_outcome(actual_home, actual_away):
        return Score(is_correct=False, points=0)

    points = POINTS_CORRECT_OUTCOME
    if predicted_home == actual_home and predicted_away == actual_away:
        points += POINTS_EXACT_SCORE_BONUS
    return Score(is_correct=True, points=points)
