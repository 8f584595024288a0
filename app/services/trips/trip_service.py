from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from uuid import uuid4
from app.core.config import settings
from app.core.database import utcnow
from app.core.logger import logger
from app.core.cache import RedisCache
from app.core.exceptions import TripNotFoundError, InvalidTripBoundsError
from app.models.trips.trip_model import Trip, TripKind, TripStatus
from app.schemas.trip.trip_schema import TripCreate
from app.services.scheduling.state_machine import require_leader
from app.services.scheduling.windows import window_end


async def fetch_trip(db: AsyncSession, trip_id: int, for_update: bool = False) -> Trip:
    stmt = select(Trip).where(Trip.id == trip_id)
    if for_update:
        # row lock on backends that support it; serializes member writes with phase moves
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    trip = result.scalar_one_or_none()
    if not trip:
        logger.warning(f"Trip not found: ID {trip_id}")
        raise TripNotFoundError(trip_id)
    return trip


def validate_bounds(start_bound, end_bound, trip_length_days: int) -> None:
    if trip_length_days < 1 or trip_length_days > settings.MAX_TRIP_LENGTH_DAYS:
        raise InvalidTripBoundsError(
            f"Trip length must be between 1 and {settings.MAX_TRIP_LENGTH_DAYS} days",
            trip_length_days=trip_length_days,
        )
    if start_bound + timedelta(days=trip_length_days - 1) > end_bound:
        raise InvalidTripBoundsError(
            f"A {trip_length_days}-day trip does not fit between {start_bound} and {end_bound}",
            start_bound=start_bound.isoformat(),
            end_bound=end_bound.isoformat(),
            trip_length_days=trip_length_days,
        )
    if (end_bound - start_bound).days + 1 > settings.MAX_SEARCH_RANGE_DAYS:
        raise InvalidTripBoundsError(
            f"Date range may span at most {settings.MAX_SEARCH_RANGE_DAYS} days",
            start_bound=start_bound.isoformat(),
            end_bound=end_bound.isoformat(),
        )


class TripService:
    def __init__(self, cache: RedisCache):
        self.cache = cache

    async def _invalidate_trip_caches(self, trip_id: int):
        """Invalidate all caches related to a trip"""
        await self.cache.delete_pattern(f"candidates:trip:{trip_id}:*")

    async def create_trip(self, db: AsyncSession, trip_data: TripCreate, member_id: int) -> Trip:
        validate_bounds(trip_data.start_bound, trip_data.end_bound, trip_data.trip_length_days)

        trip_code = str(uuid4()).split("-")[0]
        new_trip = Trip(
            title=trip_data.title,
            trip_type=TripKind(trip_data.trip_type),
            start_bound=trip_data.start_bound,
            end_bound=trip_data.end_bound,
            trip_length_days=trip_data.trip_length_days,
            leader_id=trip_data.leader_id or member_id,
            created_by=member_id,
            trip_code=trip_code,
            status=TripStatus.proposed,
        )

        # hosted trips come with fixed dates and never enter the consensus flow
        if new_trip.trip_type == TripKind.hosted:
            new_trip.status = TripStatus.locked
            new_trip.locked_start_date = trip_data.start_bound
            new_trip.locked_end_date = window_end(trip_data.start_bound, trip_data.trip_length_days)
            new_trip.locked_at = utcnow()
            new_trip.locked_by = new_trip.leader_id

        db.add(new_trip)
        await db.commit()
        await db.refresh(new_trip)

        logger.info(
            f"Trip {new_trip.id} ({new_trip.trip_type.value}) created by member {member_id} "
            f"with trip_code {trip_code}, status {new_trip.status.value}"
        )
        return new_trip

    async def get_trip_by_id(self, db: AsyncSession, trip_id: int) -> Trip:
        return await fetch_trip(db, trip_id)

    async def delete_trip(self, db: AsyncSession, trip_id: int, member_id: int) -> dict:
        trip = await fetch_trip(db, trip_id)
        require_leader(trip, member_id, "delete the trip")

        await db.delete(trip)
        await db.commit()

        await self._invalidate_trip_caches(trip_id)

        logger.info(f"Trip ID {trip_id} deleted by member {member_id}")
        return {"msg": "Trip deleted successfully"}
