"""
Football data services: API-Football client, payload normalization,
outbound rate limiting and the cache-first fixture sync.
"""
