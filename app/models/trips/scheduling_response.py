from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.core.database import Base, utcnow


class SchedulingResponse(Base):
    """Marks a member as having responded; feeds the leader's progress indicator."""
    __tablename__ = "trip_scheduling_responses"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Integer, nullable=False)
    first_responded_at = Column(DateTime(timezone=True), default=utcnow)
    last_responded_at = Column(DateTime(timezone=True), default=utcnow)

    trip = relationship("Trip", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("trip_id", "member_id", name="uq_trip_member_response"),
        Index("ix_trip_scheduling_responses_trip_id", "trip_id"),
    )
