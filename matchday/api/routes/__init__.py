"""
API routes, all mounted under /api.

- football_matches: today's fixtures (cache-first provider sync)
- popular_matches: daily popular matches snapshot
- predictions: submission, listing, leaderboard and settlement trigger
"""
