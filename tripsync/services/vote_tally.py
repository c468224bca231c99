"""Single-choice plan voting with a deterministic winner.

The tally works on a PlanVotes record owned by the caller. Loading it before
a vote and saving it afterwards is the caller's job, as is checking that the
member and plan ids exist.
"""

from typing import Optional

from tripsync.models import PlanVotes

def empty_votes() -> PlanVotes:
    return PlanVotes(tallies={}, voters={})

def compute_winner(votes: PlanVotes) -> Optional[str]:
    """Pick the plan with the most votes.

    Ties keep the current winner when it is still tied for first, otherwise
    the lexicographically smallest plan id wins.
    """
    if not votes.tallies:
        return None

    top = max(votes.tallies.values())
    candidates = [plan_id for plan_id, count in votes.tallies.items() if count == top]
    if len(candidates) == 1:
        return candidates[0]
    if votes.winner_plan_id and votes.winner_plan_id in candidates:
        return votes.winner_plan_id
    return sorted(candidates)[0]

def cast_vote(votes: PlanVotes, member_id: str, plan_id: str) -> PlanVotes:
    """Move ``member_id``'s single vote to ``plan_id`` and refresh the winner"""
    previous = votes.voters.get(member_id)
    if previous:
        votes.tallies[previous] = max(0, votes.tallies.get(previous, 1) - 1)

    votes.voters[member_id] = plan_id
    votes.tallies[plan_id] = votes.tallies.get(plan_id, 0) + 1
    votes.winner_plan_id = compute_winner(votes)
    return votes
