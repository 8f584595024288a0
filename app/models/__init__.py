from .trips.trip_model import Trip, TripStatus, TripKind
from .trips.date_pick import DatePick
from .trips.date_vote import DateVote
from .trips.scheduling_response import SchedulingResponse
