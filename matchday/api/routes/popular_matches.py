"""Popular matches route: one provider snapshot per UTC day."""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.rate_limit import limiter
from matchday.services.football.popular_matches import PopularMatchesService

router = APIRouter(prefix="/popular-matches", tags=["popular-matches"])


def get_popular_matches_service(db: Session = Depends(get_db)) -> PopularMatchesService:
    return PopularMatchesService(db)


@router.get("")
@limiter.limit("60/minute")
async def get_popular_matches(
    request: Request,
    response: Response,
    service: PopularMatchesService = Depends(get_popular_matches_service)
):
    """Today's popular matches, exactly as returned by the provider."""
    result = await service.get_today()
    response.headers["X-Cache"] = "HIT" if result.cached else "MISS"
    return result.payload
