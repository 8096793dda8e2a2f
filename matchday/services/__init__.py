"""
Services module for the Matchday business logic.

This module organizes services into:
- football: Fixture provider client, normalizer, rate limiter, sync and popular matches
- settlement: Outcome scoring and the settlement run
- prediction_service: Prediction submission, listing and leaderboard
"""
