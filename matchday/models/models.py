"""
Database models for the Matchday Predictions API.

Fixture and League rows are owned by the fixture sync pipeline. Prediction
rows are created by users while a match is upcoming and settled exactly once
by the settlement pipeline.
"""
import uuid

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Date, ForeignKey, Boolean, Index,
    UniqueConstraint, JSON
)
from sqlalchemy.orm import relationship, declarative_base

from matchday.utils.timezone import utcnow

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


# Normalized fixture lifecycle; order matters (status never moves backwards)
MATCH_STATUS_UPCOMING = "upcoming"
MATCH_STATUS_LIVE = "live"
MATCH_STATUS_FINISHED = "finished"
MATCH_STATUSES = (MATCH_STATUS_UPCOMING, MATCH_STATUS_LIVE, MATCH_STATUS_FINISHED)


class League(Base):
    """Competition as reported by the fixture provider."""
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=False)  # provider league id
    name = Column(String(255), nullable=False, index=True)
    logo = Column(String(512), nullable=True)
    country = Column(String(100), nullable=True)
    season = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Match(Base):
    """A fixture: one scheduled, live or finished football match."""
    __tablename__ = "matches"

    id = Column(String(36), primary_key=True, default=_uuid)
    external_id = Column(Integer, unique=True, nullable=False, index=True)  # provider fixture id
    home_team = Column(String(255), nullable=False)
    away_team = Column(String(255), nullable=False)
    home_logo = Column(String(512), nullable=True)
    away_logo = Column(String(512), nullable=True)
    league = Column(String(255), nullable=False, index=True)  # league name, not a FK
    match_date = Column(DateTime, nullable=False, index=True)  # kickoff, naive UTC
    start_timestamp = Column(Integer, nullable=True)  # provider epoch seconds
    status = Column(String(20), nullable=False, default=MATCH_STATUS_UPCOMING, index=True)
    api_status = Column(String(20), nullable=True)  # raw provider code (NS, 1H, FT...)
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    predictions = relationship("Prediction", back_populates="match")

    __table_args__ = (
        Index("ix_matches_status_scores", "status", "home_score", "away_score"),
    )


class SyncRequestLog(Base):
    """
    One row per outbound call to the fixture provider. Append-only.

    ``(request_day, sequence)`` is unique: claiming a quota slot inserts the
    row for ``sequence = calls already made today``, so two concurrent
    claimers that observed the same count cannot both succeed.
    """
    __tablename__ = "api_football_requests"

    id = Column(String(36), primary_key=True, default=_uuid)
    requested_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    request_day = Column(Date, nullable=False, index=True)  # UTC calendar date
    sequence = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("request_day", "sequence", name="uq_api_football_requests_day_sequence"),
    )


class Prediction(Base):
    """A user's predicted scoreline for one match."""
    __tablename__ = "predictions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    match_id = Column(String(36), ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    predicted_home_score = Column(Integer, nullable=False)
    predicted_away_score = Column(Integer, nullable=False)
    confidence = Column(Integer, nullable=False, default=5)  # not used in scoring
    is_correct = Column(Boolean, nullable=True)  # NULL until settled
    points_earned = Column(Integer, nullable=True)  # NULL until settled
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    match = relationship("Match", back_populates="predictions")

    __table_args__ = (
        UniqueConstraint("user_id", "match_id", name="uq_predictions_user_match"),
        Index("ix_predictions_match_unsettled", "match_id", "is_correct"),
    )


class UserStats(Base):
    """Per-user aggregate refreshed after each settlement run."""
    __tablename__ = "user_stats"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), unique=True, nullable=False, index=True)
    total_predictions = Column(Integer, nullable=False, default=0)
    correct_predictions = Column(Integer, nullable=False, default=0)
    accuracy_percentage = Column(Float, nullable=False, default=0.0)
    total_points = Column(Integer, nullable=False, default=0)
    rank_position = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class PopularMatchesCache(Base):
    """Popular matches provider payload, stored once per UTC day."""
    __tablename__ = "popular_matches_cache"

    id = Column(String(36), primary_key=True, default=_uuid)
    cache_date = Column(Date, unique=True, nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
