import pytest

from tripsync.models import Survey
from tripsync.services.plan_scoring import slot_score, score_plan, attach_fit_scores
from tests.factories import make_member, make_slot, make_plan


def survey(**fields):
    return Survey(**fields)


def test_quiet_spa_retreat_suits_a_healing_member():
    score = slot_score("Quiet spa retreat", "", ["힐링", "스파"], survey(emotions=["healing"]))
    assert score >= 58


def test_neutral_slot_scores_fifty():
    assert slot_score("Harbour walk", "Stroll along the pier", [], survey()) == 50


def test_each_matching_dislike_costs_fifteen():
    s = survey(dislikes=["Crowds", "noise"])
    assert slot_score("Night market", "Crowds and noise all evening", [], s) == 20
    assert slot_score("Night market", "Crowds all evening", [], s) == 35


def test_each_selected_emotion_counts_once():
    s = survey(emotions=["Healing", "foodie"])
    # culture keywords match too but culture was not selected
    assert slot_score("Spa then market food tour", "", [], s) == 66


def test_instagram_bonus_needs_importance_four_or_more():
    assert slot_score("Sunset view deck", "", [], survey(instagram_importance=5)) == 56
    assert slot_score("Sunset view deck", "", [], survey(instagram_importance=3)) == 50
    assert slot_score("Rooftop", "", ["야경"], survey(instagram_importance=4)) == 56


def test_low_budget_penalises_luxury_text():
    assert slot_score("Luxury fine dining", "", [], survey(budget_level="low")) == 44
    assert slot_score("Dinner", "A fine dining tasting menu", [], survey(budget_level="low")) == 44
    assert slot_score("Luxury fine dining", "", [], survey(budget_level="medium")) == 50


def test_limited_mobility_penalises_hikes():
    assert slot_score("Mountain hike", "", [], survey(constraints=["Low stamina"])) == 40
    assert slot_score("Mountain hike", "", [], survey(constraints=["reduced mobility"])) == 40
    assert slot_score("Mountain hike", "", [], survey(constraints=["vegan"])) == 50


def test_slot_score_is_clamped():
    s = survey(dislikes=["a", "b", "c", "d", "e"])
    assert slot_score("a b c d e", "", [], s) == 0


@pytest.mark.parametrize("priority,expected", [("high", 55), ("low", 45), ("medium", 50), (None, 50)])
def test_empty_plan_scores_weighted_neutral(priority, expected):
    member = make_member("a", priority=priority, emotions=[])
    fit = score_plan(make_plan(slots_per_day=[]), [member])
    assert fit.per_member[0].score == expected
    assert fit.group_score == expected
    assert fit.drivers == ["Mixed alignment; review per-member scores"]


def test_no_surveyed_members_returns_sentinel():
    for members in ([], [make_member("a"), make_member("b")]):
        fit = score_plan(make_plan(slots_per_day=[[make_slot("s1", "Walk")]]), members)
        assert fit.group_score == 0
        assert fit.per_member == []
        assert fit.drivers == []
        assert fit.warnings == ["No members provided"]


def test_unsurveyed_members_are_skipped():
    members = [make_member("a", emotions=["healing"]), make_member("b")]
    fit = score_plan(make_plan(slots_per_day=[[make_slot("s1", "Walk")]]), members)
    assert [m.member_id for m in fit.per_member] == ["a"]


def test_member_score_is_mean_of_slots():
    plan = make_plan(slots_per_day=[
        [make_slot("s1", "Quiet spa retreat")],
        [make_slot("s2", "Harbour walk")],
    ])
    fit = score_plan(plan, [make_member("a", emotions=["healing"])])
    assert fit.per_member[0].score == 54


def test_strong_fit_has_good_driver():
    plan = make_plan(slots_per_day=[[make_slot("s1", "Spa museum food tour", tags=["photo"])]])
    member = make_member(
        "a",
        emotions=["healing", "culture", "foodie"],
        instagram_importance=5,
        priority="high",
    )
    fit = score_plan(plan, [member])
    assert fit.group_score == 88
    assert fit.drivers == ["Good overall alignment to preferences"]
    assert fit.warnings == []
    assert fit.per_member[0].notes == ["Needs photogenic spots"]


def test_low_satisfaction_warning_and_notes():
    plan = make_plan(slots_per_day=[[make_slot("s1", "Luxury fine dining", "Crowds expected")]])
    happy = make_member("a", "Ann", emotions=["foodie"])
    unhappy = make_member("b", "Bob", budget_level="low", dislikes=["crowds"])
    fit = score_plan(plan, [happy, unhappy])

    assert [m.score for m in fit.per_member] == [50, 29]
    assert fit.group_score == 40  # 39.5 rounds half up
    assert fit.warnings == ["Bob low satisfaction"]
    assert fit.per_member[1].notes == ["Below neutral fit", "Prefer budget-friendly options"]


def test_scoring_is_deterministic():
    plan = make_plan(slots_per_day=[
        [make_slot("s1", "Sunset view deck"), make_slot("s2", "Mountain hike")],
    ])
    members = [
        make_member("a", emotions=["adventure"], instagram_importance=5),
        make_member("b", constraints=["low stamina"], priority="low"),
    ]
    assert score_plan(plan, members) == score_plan(plan, members)


def test_attach_fit_scores_leaves_input_untouched():
    plan = make_plan(slots_per_day=[[make_slot("s1", "Walk")]])
    scored = attach_fit_scores([plan], [make_member("a", emotions=[])])
    assert plan.fit_score is None
    assert scored[0].fit_score.group_score == 50
    assert scored[0].id == plan.id
