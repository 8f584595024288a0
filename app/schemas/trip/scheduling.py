from pydantic import BaseModel, Field
from typing import List, Optional, Dict
from datetime import date

# Picks

class PickCreate(BaseModel):
    start_date: date

class PickIn(BaseModel):
    rank: int = Field(..., ge=1, le=3)
    start_date: date

class PicksReplace(BaseModel):
    picks: List[PickIn] = Field(default_factory=list, max_length=3)

class PickOut(BaseModel):
    rank: int
    start_date: date
    end_date: date

class MemberPicksResponse(BaseModel):
    trip_id: int
    member_id: int
    picks: List[PickOut]

# Scoring

class Candidate(BaseModel):
    option_key: str
    start_date: date
    end_date: date
    score: int
    love_count: int = 0
    can_count: int = 0
    might_count: int = 0

class CandidatesResponse(BaseModel):
    trip_id: int
    k: int
    candidates: List[Candidate]

class DayIntensityResponse(BaseModel):
    trip_id: int
    expected_max: int
    scores: Dict[date, int]
    intensity: Dict[date, float]

# Voting

class VoteRequest(BaseModel):
    option_key: str

class VoteOut(BaseModel):
    trip_id: int
    member_id: int
    option_key: str

    class Config:
        from_attributes = True

class LockRequest(BaseModel):
    option_key: str

class BallotResponse(BaseModel):
    trip_id: int
    status: str
    options: List[Candidate]

class VotingOption(BaseModel):
    option_key: str
    start_date: date
    end_date: date
    votes: int
    voter_ids: List[int] = []

class VotingStatusResponse(BaseModel):
    trip_id: int
    status: str
    is_voting_stage: bool
    total_members: int
    voted_count: int
    remaining_count: int
    has_current_member_voted: bool
    leading_option: Optional[VotingOption] = None
    leading_votes: int = 0
    is_tie: bool = False
    ready_to_lock: bool = False
    ready_to_lock_reason: Optional[str] = None
    options: List[VotingOption] = []

class ProgressResponse(BaseModel):
    trip_id: int
    status: str
    total_members: Optional[int] = None
    responded_count: int
    voted_count: int
