from pydantic import BaseModel, Field
from typing import Literal, Optional, List
from datetime import date, datetime
from app.models.trips.trip_model import TripStatus, TripKind

class TripBase(BaseModel):
    title: str = Field(..., min_length=1)
    start_bound: date
    end_bound: date
    trip_length_days: int = Field(3, ge=1)
    trip_type: Literal["collaborative", "hosted"] = "collaborative"

class TripCreate(TripBase):
    # defaults to the creator; leadership itself is owned by the membership service
    leader_id: Optional[int] = None

class TripResponse(BaseModel):
    id: int
    title: str
    trip_type: TripKind
    start_bound: date
    end_bound: date
    trip_length_days: int
    status: TripStatus
    leader_id: int
    locked_start_date: Optional[date] = None
    locked_end_date: Optional[date] = None
    voting_opened_at: Optional[datetime] = None
    locked_at: Optional[datetime] = None
    trip_code: str

    class Config:
        from_attributes = True

class ValidStartsResponse(BaseModel):
    trip_id: int
    trip_length_days: int
    count: int
    starts: List[date]
