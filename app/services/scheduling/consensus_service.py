from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.cache import RedisCache
from app.core.config import settings
from app.core.database import utcnow
from app.core.exceptions import InvalidOptionError, EmptyBallotError
from app.core.logger import logger
from app.models.trips.trip_model import Trip, TripStatus
from app.models.trips.date_pick import DatePick
from app.models.trips.date_vote import DateVote
from app.models.trips.scheduling_response import SchedulingResponse
from app.schemas.trip.scheduling import (
    BallotResponse, Candidate, DayIntensityResponse, ProgressResponse, VotingStatusResponse,
)
from app.services.trips.trip_service import fetch_trip
from app.services.scheduling.preference_service import candidates_cache_key
from app.services.scheduling.scoring import rank_candidates, day_scores, day_intensity, MAX_WEIGHT
from app.services.scheduling.state_machine import TripEvent, compare_and_set, require_leader, next_status
from app.services.scheduling.voting import summarize_votes
from app.services.scheduling.windows import generate_valid_starts, parse_option_key


def clamp_k(k: Optional[int]) -> int:
    if k is None:
        return settings.SCHEDULING_TOP_K
    return max(1, min(k, settings.SCHEDULING_MAX_TOP_K))


async def _load_picks(db: AsyncSession, trip_id: int) -> List[DatePick]:
    result = await db.execute(
        select(DatePick).where(DatePick.trip_id == trip_id).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class ConsensusService:
    """Scoring reads, the voting ballot, and the irreversible lock."""

    def __init__(self, cache: RedisCache):
        self.cache = cache

    # ----------------------
    # Reads
    # ----------------------
    async def get_valid_starts(self, db: AsyncSession, trip_id: int):
        trip = await fetch_trip(db, trip_id)
        return trip, generate_valid_starts(trip)

    async def get_candidates(self, db: AsyncSession, trip_id: int, k: Optional[int] = None) -> List[Candidate]:
        k = clamp_k(k)
        trip = await fetch_trip(db, trip_id)

        base_key = candidates_cache_key(trip_id)
        version = await self.cache.get_version(base_key)
        cache_key = self.cache.build_key(base_key, "k", k)
        cached = await self.cache.get(cache_key, version=version)
        if cached is not None:
            logger.info(f"Candidates for trip {trip_id} (k={k}) served from cache")
            return [Candidate(**item) for item in cached]

        picks = await _load_picks(db, trip_id)
        candidates = rank_candidates(generate_valid_starts(trip), picks, k)

        await self.cache.set(
            cache_key,
            [c.model_dump(mode="json") for c in candidates],
            expire=settings.CANDIDATE_CACHE_TTL_SECONDS,
            version=version,
        )
        logger.info(f"Computed {len(candidates)} candidates for trip {trip_id} from {len(picks)} picks")
        return candidates

    async def get_day_intensity_map(
        self, db: AsyncSession, trip_id: int, active_member_count: Optional[int] = None
    ) -> DayIntensityResponse:
        trip = await fetch_trip(db, trip_id)
        picks = await _load_picks(db, trip_id)

        if not active_member_count or active_member_count < 1:
            # no roster supplied: normalize against members who have picked
            active_member_count = max(1, len({p.member_id for p in picks}))

        scores = day_scores(generate_valid_starts(trip), picks)
        return DayIntensityResponse(
            trip_id=trip_id,
            expected_max=MAX_WEIGHT * active_member_count,
            scores=scores,
            intensity=day_intensity(scores, active_member_count),
        )

    async def get_ballot(self, db: AsyncSession, trip_id: int) -> BallotResponse:
        trip = await fetch_trip(db, trip_id)
        return BallotResponse(
            trip_id=trip_id,
            status=trip.status.value,
            options=[Candidate(**option) for option in (trip.ballot or [])],
        )

    async def get_progress(
        self, db: AsyncSession, trip_id: int, active_member_count: Optional[int] = None
    ) -> ProgressResponse:
        trip = await fetch_trip(db, trip_id)
        responded = await db.scalar(
            select(func.count(SchedulingResponse.id)).where(SchedulingResponse.trip_id == trip_id)
        )
        voted = await db.scalar(
            select(func.count(DateVote.id)).where(DateVote.trip_id == trip_id)
        )
        return ProgressResponse(
            trip_id=trip_id,
            status=trip.status.value,
            total_members=active_member_count,
            responded_count=responded or 0,
            voted_count=voted or 0,
        )

    async def get_voting_status(
        self, db: AsyncSession, trip_id: int, viewer_id: int, active_member_count: Optional[int] = None
    ) -> VotingStatusResponse:
        trip = await fetch_trip(db, trip_id)
        result = await db.execute(
            select(DateVote).where(DateVote.trip_id == trip_id).execution_options(populate_existing=True)
        )
        votes = list(result.scalars().all())

        if active_member_count is None:
            active_member_count = await db.scalar(
                select(func.count(SchedulingResponse.id)).where(SchedulingResponse.trip_id == trip_id)
            ) or 0
        return summarize_votes(trip, votes, active_member_count, viewer_id)

    # ----------------------
    # Leader transitions
    # ----------------------
    async def start_scheduling(self, db: AsyncSession, trip_id: int, leader_id: int) -> Trip:
        trip = await fetch_trip(db, trip_id, for_update=True)
        next_status(trip.status, TripEvent.start_scheduling)
        require_leader(trip, leader_id, "start scheduling")

        await compare_and_set(db, trip, TripEvent.start_scheduling)
        await db.commit()
        return trip

    async def open_voting(self, db: AsyncSession, trip_id: int, leader_id: int, k: Optional[int] = None) -> List[Candidate]:
        """Freeze the top-k candidates as the ballot and move the trip to voting.

        Raising EmptyBallotError or ConflictError rolls the session back, which
        expires every instance it holds.
        """
        k = clamp_k(k)
        trip = await fetch_trip(db, trip_id, for_update=True)
        next_status(trip.status, TripEvent.open_voting)
        require_leader(trip, leader_id, "open voting")

        # flip the phase first so no pick can land between ranking and snapshot
        await compare_and_set(
            db, trip, TripEvent.open_voting, voting_opened_at=utcnow()
        )

        picks = await _load_picks(db, trip_id)
        ballot = rank_candidates(generate_valid_starts(trip), picks, k)
        if not ballot:
            await db.rollback()
            logger.warning(f"Trip {trip_id}: open voting refused, no date picks yet")
            raise EmptyBallotError(
                "No date picks yet; there is nothing to vote on",
                current_status=TripStatus.scheduling.value,
            )

        trip.ballot = [c.model_dump(mode="json") for c in ballot]
        await db.commit()

        logger.info(
            f"Trip {trip_id}: voting opened by {leader_id} with ballot "
            f"{[c.option_key for c in ballot]}"
        )
        return ballot

    async def lock(self, db: AsyncSession, trip_id: int, leader_id: int, option_key: str) -> Trip:
        trip = await fetch_trip(db, trip_id, for_update=True)
        next_status(trip.status, TripEvent.lock)
        require_leader(trip, leader_id, "lock the trip")

        # any ballot option is lockable; votes are advisory
        ballot_keys = {option["option_key"] for option in (trip.ballot or [])}
        if option_key not in ballot_keys:
            logger.warning(f"Trip {trip_id}: lock rejected, {option_key} not on ballot")
            raise InvalidOptionError(f"'{option_key}' is not on the ballot", option_key=option_key)
        start, end = parse_option_key(option_key)

        await compare_and_set(
            db,
            trip,
            TripEvent.lock,
            locked_start_date=start,
            locked_end_date=end,
            locked_at=utcnow(),
            locked_by=leader_id,
        )
        await db.commit()

        logger.info(f"Trip {trip_id}: dates locked {start} to {end} by {leader_id}")
        return trip
