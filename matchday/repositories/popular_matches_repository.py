"""
Popular Matches Repository: one cached provider payload per UTC day.
"""
from datetime import date
from typing import Any, Optional

from matchday.models import PopularMatchesCache
from matchday.repositories.base import BaseRepository


class PopularMatchesRepository(BaseRepository[PopularMatchesCache]):

    def __init__(self, db):
        super().__init__(PopularMatchesCache, db)

    def find_by_date(self, cache_date: date) -> Optional[PopularMatchesCache]:
        return self.where_first(PopularMatchesCache.cache_date == cache_date)

    def insert(self, cache_date: date, payload: Any) -> PopularMatchesCache:
        """
        Store the day's payload and commit.

        Raises:
            IntegrityError: If a row for ``cache_date`` already exists
        """
        entry = self.add(PopularMatchesCache(cache_date=cache_date, payload=payload))
        self.save()
        return entry
