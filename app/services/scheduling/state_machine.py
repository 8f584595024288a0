"""Trip phase transitions.

``status`` moves one way only::

    proposed --first pick / leader--> scheduling --leader--> voting --leader--> locked

After creation only this module writes ``Trip.status``; each move
is a single conditional UPDATE guarded on the expected prior phase, so two
racing leader actions cannot both win.
"""
import enum
from sqlalchemy import update, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from app.core.exceptions import StateError, ConflictError, LeaderOnlyError
from app.core.logger import logger
from app.models.trips.trip_model import Trip, TripStatus


class TripEvent(str, enum.Enum):
    first_pick = "first_pick"
    start_scheduling = "start_scheduling"
    open_voting = "open_voting"
    lock = "lock"


TRANSITIONS = {
    (TripStatus.proposed, TripEvent.first_pick): TripStatus.scheduling,
    (TripStatus.proposed, TripEvent.start_scheduling): TripStatus.scheduling,
    (TripStatus.scheduling, TripEvent.open_voting): TripStatus.voting,
    (TripStatus.voting, TripEvent.lock): TripStatus.locked,
}

# phases in which member writes are accepted
PICK_PHASES = frozenset({TripStatus.proposed, TripStatus.scheduling})
VOTE_PHASES = frozenset({TripStatus.voting})


def next_status(current: TripStatus, event: TripEvent) -> TripStatus:
    target = TRANSITIONS.get((current, event))
    if target is None:
        required = [src.value for (src, ev) in TRANSITIONS if ev == event]
        raise StateError(
            _blocked_message(current, event),
            current_status=current.value,
            required_status=required[0] if len(required) == 1 else ",".join(required),
        )
    return target


def _blocked_message(current: TripStatus, event: TripEvent) -> str:
    if current == TripStatus.locked:
        return "Trip is already locked"
    if event == TripEvent.open_voting and current == TripStatus.voting:
        return "Voting is already open"
    if event == TripEvent.lock:
        return f"Trip can only be locked while voting (currently {current.value})"
    return f"Cannot {event.value.replace('_', ' ')} while trip is {current.value}"


def require_phase(trip: Trip, allowed: frozenset, action: str) -> None:
    if trip.status in allowed:
        return
    required = ",".join(sorted(s.value for s in allowed))
    if trip.status == TripStatus.locked:
        message = "Trip is already locked"
    else:
        message = f"Cannot {action} while trip is {trip.status.value}"
    logger.warning(f"Trip {trip.id}: {action} rejected in phase {trip.status.value}")
    raise StateError(message, current_status=trip.status.value, required_status=required)


def require_leader(trip: Trip, member_id: int, action: str) -> None:
    if trip.leader_id != member_id:
        logger.warning(f"Trip {trip.id}: member {member_id} attempted leader-only action '{action}'")
        raise LeaderOnlyError(action)


async def compare_and_set(db: AsyncSession, trip: Trip, event: TripEvent, **values) -> TripStatus:
    """Move ``trip`` out of its loaded phase, or raise ConflictError if it moved first.

    On ConflictError the session has been rolled back, which expires every
    instance it holds; read ids off ORM objects before calling.
    """
    trip_id = trip.id
    expected = trip.status
    target = next_status(expected, event)

    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.status == expected)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = await db.scalar(select(Trip.status).where(Trip.id == trip_id))
        await db.rollback()
        current_value = current.value if current is not None else None
        logger.warning(
            f"Trip {trip_id}: {event.value} lost race, expected {expected.value} found {current_value}"
        )
        message = "Trip is already locked" if current == TripStatus.locked else (
            f"Trip moved from {expected.value} to {current_value} concurrently"
        )
        raise ConflictError(message, expected_status=expected.value, current_status=current_value)

    _sync(trip, status=target, **values)
    logger.info(f"Trip {trip_id}: {expected.value} -> {target.value} ({event.value})")
    return target


async def hold_phase(db: AsyncSession, trip: Trip, allowed: frozenset, action: str) -> None:
    """Take the trip row for write and re-check its phase inside this transaction.

    Member writes call this before touching picks or votes, so a phase move
    committed after ``trip`` was loaded is caught here instead of after the
    write lands. On StateError the session has been rolled back.
    """
    trip_id = trip.id
    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.status.in_(list(allowed)))
        .values(status=Trip.status)
        .execution_options(synchronize_session=False)
    )
    current = await db.scalar(select(Trip.status).where(Trip.id == trip_id))
    if result.rowcount == 1:
        _sync(trip, status=current)
        return

    await db.rollback()
    required = ",".join(sorted(s.value for s in allowed))
    current_value = current.value if current is not None else None
    logger.warning(f"Trip {trip_id}: {action} rejected, phase moved to {current_value}")
    message = "Trip is already locked" if current == TripStatus.locked else (
        f"Cannot {action} while trip is {current_value}"
    )
    raise StateError(message, current_status=current_value, required_status=required)


async def advance_if(db: AsyncSession, trip: Trip, event: TripEvent) -> bool:
    """Best-effort transition; a no-op when another writer already advanced the trip."""
    target = TRANSITIONS.get((trip.status, event))
    if target is None:
        return False
    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip.id, Trip.status == trip.status)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        _sync(trip, status=target)
        logger.info(f"Trip {trip.id}: advanced to {target.value} ({event.value})")
        return True
    return False


def _sync(trip: Trip, **values) -> None:
    # reflect the conditional UPDATE on the loaded instance without marking it dirty
    for key, value in values.items():
        set_committed_value(trip, key, value)
