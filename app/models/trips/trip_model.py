from sqlalchemy import Column, Integer, String, Date, DateTime, JSON, CheckConstraint, Index, func
from sqlalchemy.orm import relationship
from app.core.database import Base
import sqlalchemy as sa
import enum
import uuid


class TripStatus(str, enum.Enum):
    proposed = "proposed"
    scheduling = "scheduling"
    voting = "voting"
    locked = "locked"


class TripKind(str, enum.Enum):
    collaborative = "collaborative"
    hosted = "hosted"


tripstatus_enum = sa.Enum(
    TripStatus,
    name="tripstatus",
    values_callable=lambda obj: [e.value for e in obj]
)

tripkind_enum = sa.Enum(
    TripKind,
    name="tripkind",
    values_callable=lambda obj: [e.value for e in obj]
)


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    trip_type = Column(tripkind_enum, nullable=False, default=TripKind.collaborative)

    # inclusive search range for window start/end dates
    start_bound = Column(Date, nullable=False)
    end_bound = Column(Date, nullable=False)
    trip_length_days = Column(Integer, nullable=False)

    # only app.services.scheduling.state_machine writes this column
    status = Column(tripstatus_enum, nullable=False, default=TripStatus.proposed)
    leader_id = Column(Integer, nullable=False, index=True)
    created_by = Column(Integer, nullable=False)

    locked_start_date = Column(Date, nullable=True)
    locked_end_date = Column(Date, nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    locked_by = Column(Integer, nullable=True)

    # frozen candidate list offered for voting
    ballot = Column(JSON, nullable=True)
    voting_opened_at = Column(DateTime(timezone=True), nullable=True)

    trip_code = Column(String, unique=True, index=True, default=lambda: str(uuid.uuid4())[:8])
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    picks = relationship("DatePick", back_populates="trip", cascade="all, delete-orphan")
    votes = relationship("DateVote", back_populates="trip", cascade="all, delete-orphan")
    responses = relationship("SchedulingResponse", back_populates="trip", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("trip_length_days >= 1", name="ck_trip_length_positive"),
        CheckConstraint("start_bound <= end_bound", name="ck_trip_bounds_ordered"),
        CheckConstraint(
            "(status = 'locked' AND locked_start_date IS NOT NULL AND locked_end_date IS NOT NULL)"
            " OR (status != 'locked' AND locked_start_date IS NULL AND locked_end_date IS NULL)",
            name="ck_trip_locked_dates",
        ),
        Index("ix_trips_status", "status"),
    )

