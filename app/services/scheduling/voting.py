from typing import Iterable, List, Optional
from app.schemas.trip.scheduling import VotingOption, VotingStatusResponse
from app.models.trips.trip_model import TripStatus


def summarize_votes(trip, votes: Iterable, total_members: int, viewer_id: Optional[int] = None) -> VotingStatusResponse:
    """Advisory vote tally for the ballot; lock never consults it."""
    status = trip.status.value
    result = VotingStatusResponse(
        trip_id=trip.id,
        status=status,
        is_voting_stage=trip.status == TripStatus.voting,
        total_members=total_members,
        voted_count=0,
        remaining_count=total_members,
        has_current_member_voted=False,
    )
    if trip.status != TripStatus.voting:
        return result

    ballot = trip.ballot or []
    options: dict = {}
    order: dict = {}
    for index, candidate in enumerate(ballot):
        key = candidate["option_key"]
        order[key] = index
        options[key] = VotingOption(
            option_key=key,
            start_date=candidate["start_date"],
            end_date=candidate["end_date"],
            votes=0,
            voter_ids=[],
        )

    voters = set()
    for vote in votes:
        voters.add(vote.member_id)
        option = options.get(vote.option_key)
        if option is not None:
            option.votes += 1
            option.voter_ids.append(vote.member_id)

    result.voted_count = len(voters)
    result.total_members = max(total_members, len(voters))
    result.remaining_count = result.total_members - result.voted_count
    result.has_current_member_voted = viewer_id in voters

    ranked: List[VotingOption] = sorted(options.values(), key=lambda o: (-o.votes, order[o.option_key]))
    result.options = ranked
    if not ranked or ranked[0].votes == 0:
        return result

    result.leading_option = ranked[0]
    result.leading_votes = ranked[0].votes
    result.is_tie = len(ranked) > 1 and ranked[1].votes == result.leading_votes

    all_voted = result.voted_count == result.total_members
    majority_voted = result.voted_count > result.total_members / 2
    if majority_voted and not result.is_tie:
        result.ready_to_lock = True
        result.ready_to_lock_reason = (
            "All votes in" if all_voted
            else f"{result.voted_count}/{result.total_members} voted, clear leader"
        )
    elif all_voted and result.is_tie:
        result.ready_to_lock = True
        result.ready_to_lock_reason = "All votes in (tie - leader decides)"
    return result
