from tripsync.models import PlanVotes
from tripsync.services.vote_tally import cast_vote, compute_winner, empty_votes


def test_no_tallies_no_winner():
    assert compute_winner(empty_votes()) is None


def test_revote_moves_the_single_vote():
    votes = empty_votes()
    cast_vote(votes, "A", "planX")
    cast_vote(votes, "B", "planX")
    cast_vote(votes, "C", "planY")
    assert votes.tallies == {"planX": 2, "planY": 1}
    assert votes.winner_plan_id == "planX"

    cast_vote(votes, "C", "planX")
    assert votes.tallies == {"planX": 3, "planY": 0}
    assert votes.voters == {"A": "planX", "B": "planX", "C": "planX"}
    assert votes.winner_plan_id == "planX"


def test_voting_twice_for_same_plan_counts_once():
    votes = empty_votes()
    cast_vote(votes, "A", "planX")
    cast_vote(votes, "A", "planX")
    assert votes.tallies == {"planX": 1}


def test_tie_without_prior_winner_picks_smallest_id():
    votes = PlanVotes(tallies={"planY": 1, "planX": 1}, voters={"A": "planY", "B": "planX"})
    assert compute_winner(votes) == "planX"


def test_tie_keeps_prior_winner():
    votes = PlanVotes(tallies={"planX": 1, "planY": 1}, winner_plan_id="planY")
    assert compute_winner(votes) == "planY"


def test_prior_winner_dropped_from_first_place_is_replaced():
    votes = PlanVotes(tallies={"planA": 1, "planB": 2, "planC": 2}, winner_plan_id="planA")
    assert compute_winner(votes) == "planB"


def test_tie_after_vote_keeps_leader():
    votes = empty_votes()
    cast_vote(votes, "A", "planY")
    assert votes.winner_plan_id == "planY"
    cast_vote(votes, "B", "planX")
    assert votes.winner_plan_id == "planY"


def test_tally_never_goes_negative():
    votes = PlanVotes(tallies={}, voters={"A": "planX"})
    cast_vote(votes, "A", "planY")
    assert votes.tallies == {"planX": 0, "planY": 1}
    assert votes.winner_plan_id == "planY"
