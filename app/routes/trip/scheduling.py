from typing import Optional
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.redis_lifecyle import get_cache
from app.dependencies.auth import get_current_member_id
from app.schemas.trip.trip_schema import TripResponse
from app.schemas.trip.scheduling import (
    PickCreate, PicksReplace, PickOut, MemberPicksResponse, CandidatesResponse,
    DayIntensityResponse, VoteRequest, VoteOut, LockRequest, BallotResponse,
    VotingStatusResponse, ProgressResponse,
)
from app.services.scheduling.consensus_service import ConsensusService, clamp_k
from app.services.scheduling.preference_service import PreferenceService
from app.services.scheduling.windows import window_end
from app.services.trips.trip_service import fetch_trip

router = APIRouter(prefix="/trips", tags=["Date Scheduling"])

async def get_preference_service(cache=Depends(get_cache)) -> PreferenceService:
    return PreferenceService(cache)

async def get_consensus_service(cache=Depends(get_cache)) -> ConsensusService:
    return ConsensusService(cache)


def _picks_response(trip, member_id, picks) -> MemberPicksResponse:
    return MemberPicksResponse(
        trip_id=trip.id,
        member_id=member_id,
        picks=[
            PickOut(rank=p.rank, start_date=p.start_date, end_date=window_end(p.start_date, trip.trip_length_days))
            for p in picks
        ],
    )

# Picks

@router.get("/{trip_id}/date-picks", response_model=MemberPicksResponse)
async def get_my_picks(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    prefs: PreferenceService = Depends(get_preference_service)
):
    trip = await fetch_trip(db, trip_id)
    picks = await prefs.list_picks(db, trip_id, member_id)
    return _picks_response(trip, member_id, picks)

@router.post("/{trip_id}/date-picks/{rank}", response_model=MemberPicksResponse)
async def submit_pick(
    trip_id: int,
    payload: PickCreate,
    rank: int = Path(..., ge=1, le=3, description="1 = love, 2 = can, 3 = might"),
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    prefs: PreferenceService = Depends(get_preference_service)
):
    await prefs.submit_pick(db, trip_id, member_id, rank, payload.start_date)
    trip = await fetch_trip(db, trip_id)
    picks = await prefs.list_picks(db, trip_id, member_id)
    return _picks_response(trip, member_id, picks)

@router.put("/{trip_id}/date-picks", response_model=MemberPicksResponse)
async def replace_picks(
    trip_id: int,
    payload: PicksReplace,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    prefs: PreferenceService = Depends(get_preference_service)
):
    picks = await prefs.replace_picks(db, trip_id, member_id, payload.picks)
    trip = await fetch_trip(db, trip_id)
    return _picks_response(trip, member_id, picks)

@router.delete("/{trip_id}/date-picks")
async def clear_picks(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    prefs: PreferenceService = Depends(get_preference_service)
):
    removed = await prefs.clear_picks(db, trip_id, member_id)
    return {"status": "ok", "removed": removed}

# Scoring

@router.get("/{trip_id}/heatmap", response_model=DayIntensityResponse)
async def get_heatmap(
    trip_id: int,
    active_member_count: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    return await consensus.get_day_intensity_map(db, trip_id, active_member_count)

@router.get("/{trip_id}/candidates", response_model=CandidatesResponse)
async def get_candidates(
    trip_id: int,
    k: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    candidates = await consensus.get_candidates(db, trip_id, k)
    return CandidatesResponse(trip_id=trip_id, k=clamp_k(k), candidates=candidates)

# Phase transitions

@router.post("/{trip_id}/start-scheduling", response_model=TripResponse)
async def start_scheduling(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    return await consensus.start_scheduling(db, trip_id, member_id)

@router.post("/{trip_id}/open-voting", response_model=BallotResponse)
async def open_voting(
    trip_id: int,
    k: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    ballot = await consensus.open_voting(db, trip_id, member_id, k)
    return BallotResponse(trip_id=trip_id, status="voting", options=ballot)

@router.get("/{trip_id}/ballot", response_model=BallotResponse)
async def get_ballot(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    return await consensus.get_ballot(db, trip_id)

@router.post("/{trip_id}/lock", response_model=TripResponse)
async def lock_trip(
    trip_id: int,
    payload: LockRequest,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    return await consensus.lock(db, trip_id, member_id, payload.option_key)

# Votes

@router.post("/{trip_id}/vote", response_model=VoteOut)
async def vote(
    trip_id: int,
    payload: VoteRequest,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    prefs: PreferenceService = Depends(get_preference_service)
):
    return await prefs.submit_vote(db, trip_id, member_id, payload.option_key)

@router.get("/{trip_id}/vote", response_model=Optional[VoteOut])
async def get_my_vote(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    prefs: PreferenceService = Depends(get_preference_service)
):
    await fetch_trip(db, trip_id)
    return await prefs.get_member_vote(db, trip_id, member_id)

@router.get("/{trip_id}/voting-status", response_model=VotingStatusResponse)
async def voting_status(
    trip_id: int,
    active_member_count: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    return await consensus.get_voting_status(db, trip_id, member_id, active_member_count)

@router.get("/{trip_id}/progress", response_model=ProgressResponse)
async def progress(
    trip_id: int,
    active_member_count: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    member_id: int = Depends(get_current_member_id),
    consensus: ConsensusService = Depends(get_consensus_service)
):
    return await consensus.get_progress(db, trip_id, active_member_count)

__all__ = ["router"]
