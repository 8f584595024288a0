from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.schemas.trip.trip_schema import TripCreate, TripResponse, ValidStartsResponse
from app.core.database import get_db
from app.core.redis_lifecyle import get_cache
from app.dependencies.auth import get_current_member_id
from app.services.trips.trip_service import TripService
from app.services.scheduling.consensus_service import ConsensusService

router = APIRouter(prefix="/trips", tags=['Trips'])

async def get_trip_service(
    cache=Depends(get_cache)
) -> TripService:
    return TripService(cache)

async def get_consensus_service(
    cache=Depends(get_cache)
) -> ConsensusService:
    return ConsensusService(cache)

@router.post("", response_model=TripResponse, status_code=201)
async def create_trip_route(
    trip: TripCreate,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    trip_service: TripService = Depends(get_trip_service)
):
    return await trip_service.create_trip(db, trip, member_id)

@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int,
    session: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    trip_service: TripService = Depends(get_trip_service)
):
    return await trip_service.get_trip_by_id(session, trip_id)

@router.delete("/{trip_id}")
async def delete_trip_route(
    trip_id: int,
    session: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    trip_service: TripService = Depends(get_trip_service)
):
    return await trip_service.delete_trip(session, trip_id, member_id)

@router.get("/{trip_id}/valid-starts", response_model=ValidStartsResponse)
async def get_valid_starts(
    trip_id: int,
    session: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    trip, starts = await consensus.get_valid_starts(session, trip_id)
    return ValidStartsResponse(
        trip_id=trip.id,
        trip_length_days=trip.trip_length_days,
        count=len(starts),
        starts=list(starts),
    )
