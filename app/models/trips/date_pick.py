from sqlalchemy import Column, Integer, Date, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship
from app.core.database import Base, utcnow


class DatePick(Base):
    __tablename__ = "trip_date_picks"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Integer, nullable=False)
    rank = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    trip = relationship("Trip", back_populates="picks")

    __table_args__ = (
        UniqueConstraint("trip_id", "member_id", "rank", name="uq_trip_member_rank"),
        UniqueConstraint("trip_id", "member_id", "start_date", name="uq_trip_member_start"),
        CheckConstraint("rank BETWEEN 1 AND 3", name="ck_pick_rank_range"),
        Index("ix_trip_date_picks_trip_id", "trip_id"),
    )
