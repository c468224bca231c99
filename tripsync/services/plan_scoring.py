"""Keyword-based fit scoring of an itinerary against each member's survey."""

from typing import Dict, List

from tripsync.models import Member, Survey, PlanPackage, PlanFitScore, MemberFit
from tripsync.services.preference_mediator import round_half_up, DEFAULT_INSTAGRAM_IMPORTANCE

NEUTRAL_SCORE = 50

EMOTION_TAGS: Dict[str, List[str]] = {
    "healing": ["힐링", "healing", "relax", "spa", "wellness", "calm"],
    "excitement": ["설렘", "excite", "festival", "show", "nightlife"],
    "adventure": ["모험", "adventure", "hike", "surf", "rafting", "activity"],
    "culture": ["문화", "museum", "gallery", "heritage", "tour"],
    "foodie": ["food", "맛집", "restaurant", "cafe", "market", "foodie"],
}

INSTAGRAM_TAGS = ["photo", "view", "뷰", "야경", "sunset", "instagram", "카페", "scenic"]

LUXURY_KEYWORDS = ["fine dining", "luxury"]
ACTIVE_KEYWORDS = ["hike", "trail", "trek"]
LOW_MOBILITY_CONSTRAINTS = ["low stamina", "mobility"]

PRIORITY_WEIGHTS = {"high": 1.1, "low": 0.9}

def _clamp(score):
    return max(0, min(100, score))

def _matches(keywords: List[str], text: str, tags: List[str]) -> bool:
    return any(
        keyword in text or any(keyword in tag for tag in tags)
        for keyword in keywords
    )

def slot_score(title: str, description: str, tags: List[str], survey: Survey) -> int:
    """Score one activity slot for one member, starting from a neutral 50"""
    text = f"{title} {description}".lower()
    tags = [tag.lower() for tag in tags or []]
    score = NEUTRAL_SCORE

    for dislike in survey.dislikes:
        if dislike.lower() in text:
            score -= 15

    emotions = [emotion.lower() for emotion in survey.emotions]
    for emotion, keywords in EMOTION_TAGS.items():
        if emotion in emotions and _matches(keywords, text, tags):
            score += 8

    instagram_importance = survey.instagram_importance or DEFAULT_INSTAGRAM_IMPORTANCE
    if instagram_importance >= 4 and _matches(INSTAGRAM_TAGS, text, tags):
        score += 6

    # No price data on slots, so budget only penalises obvious luxury
    if survey.budget_level == "low" and any(k in text for k in LUXURY_KEYWORDS):
        score -= 6

    constraints = [constraint.lower() for constraint in survey.constraints]
    limited = any(k in c for c in constraints for k in LOW_MOBILITY_CONSTRAINTS)
    if limited and any(k in text for k in ACTIVE_KEYWORDS):
        score -= 10

    return _clamp(score)

def _member_fit(plan: PlanPackage, member: Member) -> MemberFit:
    survey = member.survey
    slot_scores = [
        slot_score(slot.title, slot.description, slot.tags, survey)
        for day in plan.days
        for slot in day.slots
    ]
    base = sum(slot_scores) / len(slot_scores) if slot_scores else NEUTRAL_SCORE
    weight = PRIORITY_WEIGHTS.get(survey.priority, 1.0)
    final_score = int(_clamp(round_half_up(base * weight)))

    notes = []
    if final_score < NEUTRAL_SCORE:
        notes.append("Below neutral fit")
    if (survey.instagram_importance or DEFAULT_INSTAGRAM_IMPORTANCE) >= 4:
        notes.append("Needs photogenic spots")
    if survey.budget_level == "low":
        notes.append("Prefer budget-friendly options")

    return MemberFit(member_id=member.id, nickname=member.nickname, score=final_score, notes=notes)

def score_plan(plan: PlanPackage, members: List[Member]) -> PlanFitScore:
    """Score a plan for every surveyed member and aggregate a group score"""
    surveyed = [member for member in members if member.survey]
    if not surveyed:
        return PlanFitScore(group_score=0, per_member=[], drivers=[], warnings=["No members provided"])

    per_member = [_member_fit(plan, member) for member in surveyed]
    group_score = round_half_up(sum(fit.score for fit in per_member) / len(per_member))

    if group_score >= 70:
        drivers = ["Good overall alignment to preferences"]
    else:
        drivers = ["Mixed alignment; review per-member scores"]

    warnings = [f"{fit.nickname} low satisfaction" for fit in per_member if fit.score < NEUTRAL_SCORE]

    return PlanFitScore(group_score=group_score, per_member=per_member, drivers=drivers, warnings=warnings)

def attach_fit_scores(plans: List[PlanPackage], members: List[Member]) -> List[PlanPackage]:
    """Return copies of the plans carrying a freshly computed fitScore"""
    return [
        plan.model_copy(update={"fit_score": score_plan(plan, members)})
        for plan in plans
    ]
