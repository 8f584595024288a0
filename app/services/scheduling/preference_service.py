from typing import List, Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.cache import RedisCache
from app.core.database import utcnow
from app.core.exceptions import InvalidWindowError, DuplicateWindowError, InvalidPickError, InvalidOptionError
from app.core.logger import logger
from app.models.trips.trip_model import Trip, TripStatus
from app.models.trips.date_pick import DatePick
from app.models.trips.date_vote import DateVote
from app.models.trips.scheduling_response import SchedulingResponse
from app.schemas.trip.scheduling import PickIn
from app.services.trips.trip_service import fetch_trip
from app.services.scheduling.state_machine import (
    TripEvent, PICK_PHASES, VOTE_PHASES, require_phase, hold_phase, advance_if,
)
from app.services.scheduling.windows import generate_valid_starts
from app.utils.upsert import upsert

MAX_PICKS_PER_MEMBER = 3
VALID_RANKS = (1, 2, 3)


def candidates_cache_key(trip_id: int) -> str:
    return f"candidates:trip:{trip_id}"


def _check_window(trip: Trip, start_date) -> None:
    valid_starts = generate_valid_starts(trip)
    if start_date not in valid_starts:
        logger.warning(f"Trip {trip.id}: rejected out-of-range window start {start_date}")
        raise InvalidWindowError(
            f"Window starting {start_date} ({trip.trip_length_days} days) is outside "
            f"{trip.start_bound} to {trip.end_bound}",
            start_date=str(start_date),
            first_valid_start=trip.start_bound.isoformat(),
            last_valid_start=valid_starts.last_start.isoformat(),
        )


def _check_rank(rank: int) -> None:
    if rank not in VALID_RANKS:
        raise InvalidPickError("Rank must be 1, 2, or 3", rank=rank)


class PreferenceService:
    """Member picks and votes. Every write is an upsert keyed per member."""

    def __init__(self, cache: RedisCache):
        self.cache = cache

    async def _mark_responded(self, db: AsyncSession, trip_id: int, member_id: int) -> None:
        now = utcnow()
        await db.execute(
            upsert(
                db,
                SchedulingResponse,
                {
                    "trip_id": trip_id,
                    "member_id": member_id,
                    "first_responded_at": now,
                    "last_responded_at": now,
                },
                conflict_on=["trip_id", "member_id"],
                update_fields=["last_responded_at"],
            )
        )

    async def _after_pick_write(self, db: AsyncSession, trip: Trip, member_id: int, picked: bool = True) -> None:
        if picked and trip.status == TripStatus.proposed:
            await advance_if(db, trip, TripEvent.first_pick)
        await self._mark_responded(db, trip.id, member_id)

    async def _invalidate_candidates(self, trip_id: int) -> None:
        await self.cache.bump_version(candidates_cache_key(trip_id))

    async def submit_pick(self, db: AsyncSession, trip_id: int, member_id: int, rank: int, start_date) -> DatePick:
        trip = await fetch_trip(db, trip_id, for_update=True)
        require_phase(trip, PICK_PHASES, "change date picks")
        _check_rank(rank)
        _check_window(trip, start_date)

        # same window under another rank is rejected; same rank is an overwrite
        clash = await db.scalar(
            select(DatePick.rank).where(
                DatePick.trip_id == trip_id,
                DatePick.member_id == member_id,
                DatePick.start_date == start_date,
                DatePick.rank != rank,
            )
        )
        if clash is not None:
            raise DuplicateWindowError(
                f"Window starting {start_date} is already your rank {clash} pick",
                start_date=str(start_date),
                existing_rank=clash,
            )
        await hold_phase(db, trip, PICK_PHASES, "change date picks")

        now = utcnow()
        try:
            await db.execute(
                upsert(
                    db,
                    DatePick,
                    {
                        "trip_id": trip_id,
                        "member_id": member_id,
                        "rank": rank,
                        "start_date": start_date,
                        "created_at": now,
                        "updated_at": now,
                    },
                    conflict_on=["trip_id", "member_id", "rank"],
                    update_fields=["start_date", "updated_at"],
                )
            )
        except IntegrityError:
            # a concurrent write from the same member claimed this window under another rank
            await db.rollback()
            raise DuplicateWindowError(
                f"Window starting {start_date} is already one of your picks",
                start_date=str(start_date),
            ) from None

        await self._after_pick_write(db, trip, member_id)
        await db.commit()
        await self._invalidate_candidates(trip_id)

        pick = await db.scalar(
            select(DatePick).where(
                DatePick.trip_id == trip_id,
                DatePick.member_id == member_id,
                DatePick.rank == rank,
            ).execution_options(populate_existing=True)
        )
        logger.info(f"Trip {trip_id}: member {member_id} picked rank {rank} -> {start_date}")
        return pick

    async def replace_picks(self, db: AsyncSession, trip_id: int, member_id: int, picks: List[PickIn]) -> List[DatePick]:
        """Replace all of a member's picks in one transaction."""
        trip = await fetch_trip(db, trip_id, for_update=True)
        require_phase(trip, PICK_PHASES, "change date picks")

        if len(picks) > MAX_PICKS_PER_MEMBER:
            raise InvalidPickError(f"Maximum {MAX_PICKS_PER_MEMBER} picks allowed", count=len(picks))

        seen_ranks = set()
        seen_dates = set()
        for pick in picks:
            _check_rank(pick.rank)
            if pick.rank in seen_ranks:
                raise InvalidPickError(f"Duplicate rank {pick.rank}", rank=pick.rank)
            if pick.start_date in seen_dates:
                raise DuplicateWindowError(
                    f"Duplicate start date {pick.start_date}",
                    start_date=str(pick.start_date),
                )
            _check_window(trip, pick.start_date)
            seen_ranks.add(pick.rank)
            seen_dates.add(pick.start_date)
        await hold_phase(db, trip, PICK_PHASES, "change date picks")

        await db.execute(
            delete(DatePick).where(DatePick.trip_id == trip_id, DatePick.member_id == member_id)
        )
        for pick in picks:
            db.add(DatePick(trip_id=trip_id, member_id=member_id, rank=pick.rank, start_date=pick.start_date))

        await self._after_pick_write(db, trip, member_id, picked=bool(picks))
        await db.commit()
        await self._invalidate_candidates(trip_id)

        logger.info(f"Trip {trip_id}: member {member_id} replaced picks ({len(picks)} picks)")
        return await self.list_picks(db, trip_id, member_id)

    async def clear_picks(self, db: AsyncSession, trip_id: int, member_id: int) -> int:
        trip = await fetch_trip(db, trip_id, for_update=True)
        require_phase(trip, PICK_PHASES, "clear date picks")
        await hold_phase(db, trip, PICK_PHASES, "clear date picks")

        result = await db.execute(
            delete(DatePick).where(DatePick.trip_id == trip_id, DatePick.member_id == member_id)
        )
        await self._mark_responded(db, trip_id, member_id)
        await db.commit()
        await self._invalidate_candidates(trip_id)

        logger.info(f"Trip {trip_id}: member {member_id} cleared {result.rowcount} picks")
        return result.rowcount

    async def list_picks(self, db: AsyncSession, trip_id: int, member_id: Optional[int] = None) -> List[DatePick]:
        stmt = select(DatePick).where(DatePick.trip_id == trip_id)
        if member_id is not None:
            stmt = stmt.where(DatePick.member_id == member_id)
        # upserts bypass the identity map, so always take row values from the database
        result = await db.execute(
            stmt.order_by(DatePick.member_id, DatePick.rank).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def submit_vote(self, db: AsyncSession, trip_id: int, member_id: int, option_key: str) -> DateVote:
        trip = await fetch_trip(db, trip_id, for_update=True)
        require_phase(trip, VOTE_PHASES, "vote")

        ballot_keys = {option["option_key"] for option in (trip.ballot or [])}
        if option_key not in ballot_keys:
            logger.warning(f"Trip {trip_id}: member {member_id} voted for unknown option {option_key}")
            raise InvalidOptionError(f"'{option_key}' is not on the ballot", option_key=option_key)
        await hold_phase(db, trip, VOTE_PHASES, "vote")

        now = utcnow()
        await db.execute(
            upsert(
                db,
                DateVote,
                {
                    "trip_id": trip_id,
                    "member_id": member_id,
                    "option_key": option_key,
                    "created_at": now,
                    "updated_at": now,
                },
                conflict_on=["trip_id", "member_id"],
                update_fields=["option_key", "updated_at"],
            )
        )
        await self._mark_responded(db, trip_id, member_id)
        await db.commit()

        logger.info(f"Trip {trip_id}: member {member_id} voted for {option_key}")
        return await self.get_member_vote(db, trip_id, member_id)

    async def get_member_vote(self, db: AsyncSession, trip_id: int, member_id: int) -> Optional[DateVote]:
        return await db.scalar(
            select(DateVote)
            .where(DateVote.trip_id == trip_id, DateVote.member_id == member_id)
            .execution_options(populate_existing=True)
        )

    async def list_votes(self, db: AsyncSession, trip_id: int) -> List[DateVote]:
        result = await db.execute(
            select(DateVote).where(DateVote.trip_id == trip_id).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
