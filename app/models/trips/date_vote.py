from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.core.database import Base, utcnow


class DateVote(Base):
    __tablename__ = "trip_date_votes"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Integer, nullable=False)
    option_key = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    trip = relationship("Trip", back_populates="votes")

    __table_args__ = (
        UniqueConstraint("trip_id", "member_id", name="uq_trip_member_vote"),
        Index("ix_trip_date_votes_trip_id", "trip_id"),
    )
