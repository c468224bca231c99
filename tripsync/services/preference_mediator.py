"""Preference mediation: survey aggregation, consensus and conflict detection.

Every function here is a pure function of its inputs. Nothing is cached or
persisted; a conflict report is rebuilt from the members on each request.
"""

import math
from typing import Dict, List, Optional

from tripsync.models import (
    Member, PreferenceProfile, ConsensusBand, WakeWindow,
    ConflictItem, ConflictReport, ConflictType, Severity,
)

MINUTES_IN_DAY = 24 * 60
DEFAULT_WAKE_TIME = "08:00"
DEFAULT_INSTAGRAM_IMPORTANCE = 3

BUDGET_SCORES = {"low": 1, "medium": 2, "high": 3}

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3)"""
    return int(math.floor(value + 0.5))

def budget_to_score(level: Optional[str]) -> int:
    return BUDGET_SCORES.get(level, 2)

def score_to_budget(score: float) -> str:
    if score <= 1:
        return "low"
    if score >= 3:
        return "high"
    return "medium"

def time_to_minutes(time: Optional[str]) -> int:
    """Convert "HH:MM" to minutes since midnight"""
    try:
        hours, minutes = (time or DEFAULT_WAKE_TIME).split(":")[:2]
        return (int(hours) % 24) * 60 + (int(minutes) % 60)
    except ValueError:
        return time_to_minutes(DEFAULT_WAKE_TIME)

def minutes_to_time(total: int) -> str:
    minutes = max(0, min(total, MINUTES_IN_DAY - 1))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"

def build_preference_profiles(members: List[Member]) -> List[PreferenceProfile]:
    """Map every member that submitted a survey to a PreferenceProfile"""
    profiles = []
    for member in members:
        survey = member.survey
        if not survey:
            continue
        profiles.append(PreferenceProfile(
            member_id=member.id,
            nickname=member.nickname,
            budget_score=budget_to_score(survey.budget_level),
            wake_minutes=time_to_minutes(survey.wake_up_time),
            emotions=list(survey.emotions or []),
            dislikes=list(survey.dislikes or []),
            constraints=list(survey.constraints or []),
            instagram_importance=(
                survey.instagram_importance
                if survey.instagram_importance is not None
                else DEFAULT_INSTAGRAM_IMPORTANCE
            ),
        ))
    return profiles

def _members_by_value(profiles: List[PreferenceProfile], field: str) -> Dict[str, List[str]]:
    """Group member ids by case-folded value, counting each member once per value"""
    grouped: Dict[str, List[str]] = {}
    for profile in profiles:
        for value in getattr(profile, field):
            key = value.lower()
            member_ids = grouped.setdefault(key, [])
            if profile.member_id not in member_ids:
                member_ids.append(profile.member_id)
    return grouped

def default_consensus() -> ConsensusBand:
    return ConsensusBand(
        budget="medium",
        wake_window=WakeWindow(start="08:00", end="09:00"),
        dominant_emotions=[],
        shared_constraints=[],
    )

def derive_consensus(profiles: List[PreferenceProfile]) -> ConsensusBand:
    """Reduce the group's profiles to a single consensus band"""
    if not profiles:
        return default_consensus()

    avg_budget = sum(p.budget_score for p in profiles) / len(profiles)
    wake_times = sorted(p.wake_minutes for p in profiles)
    wake_start = minutes_to_time(max(0, wake_times[0] - 30))
    wake_end = minutes_to_time(min(MINUTES_IN_DAY - 1, wake_times[-1] + 60))

    emotion_counts: Dict[str, int] = {}
    for profile in profiles:
        for emotion in profile.emotions:
            key = emotion.lower()
            emotion_counts[key] = emotion_counts.get(key, 0) + 1
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(emotion_counts.items(), key=lambda item: -item[1])
    dominant_emotions = [emotion for emotion, _ in ranked[:3]]

    shared_constraints = [
        constraint
        for constraint, member_ids in _members_by_value(profiles, "constraints").items()
        if len(member_ids) > 1
    ]

    return ConsensusBand(
        budget=score_to_budget(round_half_up(avg_budget)),
        wake_window=WakeWindow(start=wake_start, end=wake_end),
        dominant_emotions=dominant_emotions,
        shared_constraints=shared_constraints,
    )

def detect_conflicts(profiles: List[PreferenceProfile]) -> List[ConflictItem]:
    """Flag budget, wake-up, instagram, dislike and constraint disagreements"""
    if not profiles:
        return []

    conflicts: List[ConflictItem] = []
    everyone = [p.member_id for p in profiles]

    budget_scores = [p.budget_score for p in profiles]
    budget_spread = max(budget_scores) - min(budget_scores)
    if budget_spread >= 2:
        conflicts.append(ConflictItem(
            type=ConflictType.BUDGET,
            severity=Severity.HIGH,
            description="Wide budget gap between travelers",
            members_involved=list(everyone),
        ))
    elif budget_spread == 1:
        conflicts.append(ConflictItem(
            type=ConflictType.BUDGET,
            severity=Severity.MEDIUM,
            description="Moderate budget differences",
            members_involved=list(everyone),
        ))

    wake_times = [p.wake_minutes for p in profiles]
    wake_spread = max(wake_times) - min(wake_times)
    if wake_spread > 120:
        conflicts.append(ConflictItem(
            type=ConflictType.WAKE,
            severity=Severity.HIGH,
            description="Large wake-up time gap",
            members_involved=list(everyone),
        ))
    elif wake_spread > 60:
        conflicts.append(ConflictItem(
            type=ConflictType.WAKE,
            severity=Severity.MEDIUM,
            description="Different preferred wake-up times",
            members_involved=list(everyone),
        ))

    insta_scores = [p.instagram_importance for p in profiles]
    if max(insta_scores) - min(insta_scores) >= 3:
        conflicts.append(ConflictItem(
            type=ConflictType.INSTAGRAM,
            severity=Severity.MEDIUM,
            description="Some travelers care much more about photogenic spots",
            members_involved=list(everyone),
        ))

    for dislike, member_ids in _members_by_value(profiles, "dislikes").items():
        if len(member_ids) > 1:
            conflicts.append(ConflictItem(
                type=ConflictType.DISLIKE,
                severity=Severity.LOW,
                description=f"Multiple travelers want to avoid {dislike}",
                members_involved=member_ids,
            ))

    for constraint, member_ids in _members_by_value(profiles, "constraints").items():
        if len(member_ids) > 1:
            conflicts.append(ConflictItem(
                type=ConflictType.CONSTRAINT,
                severity=Severity.MEDIUM,
                description=f"Shared constraint: {constraint}",
                members_involved=member_ids,
            ))

    return conflicts

def build_conflict_report(members: List[Member]) -> ConflictReport:
    profiles = build_preference_profiles(members)
    return ConflictReport(
        profiles=profiles,
        consensus=derive_consensus(profiles),
        conflicts=detect_conflicts(profiles),
    )
