import logging
import uuid
from typing import List, Dict, Any

from fastapi import APIRouter, HTTPException, status
from pydantic import TypeAdapter

from tripsync.models import (
    PlanPackage, PlanVotes, PlanSelect, VoteSubmit, PlanUpdate, PlanRefine,
)
from tripsync.database import db
from tripsync.routers.lookups import require_room, require_plans, find_plan
from tripsync.services.ai_service import ai_service
from tripsync.services.plan_scoring import attach_fit_scores, score_plan
from tripsync.services.preference_mediator import build_conflict_report
from tripsync.services.vote_tally import cast_vote, compute_winner, empty_votes

logger = logging.getLogger(__name__)

router = APIRouter()

_DAY_UPDATES = TypeAdapter(List[Dict[str, Any]])

def _existing_day(days_by_number: Dict[int, Dict[str, Any]], day_update: Dict[str, Any]) -> Dict[str, Any]:
    day = day_update.get("day")
    return days_by_number.get(day, {}) if isinstance(day, int) else {}

def merge_plan(original: PlanPackage, updates: Dict[str, Any]) -> PlanPackage:
    """Shallow-merge camelCase updates into a plan; days merge by day number"""
    current = original.model_dump(by_alias=True)
    merged = {**current, **updates, "id": original.id, "roomId": original.room_id}
    if "days" in updates:
        # Raises ValidationError (a ValueError) unless days is a list of objects
        day_updates = _DAY_UPDATES.validate_python(updates["days"])
        days_by_number = {day["day"]: day for day in current["days"]}
        merged["days"] = [
            {**_existing_day(days_by_number, day_update), **day_update}
            for day_update in day_updates
        ]
    return PlanPackage.model_validate(merged)

@router.get("/{room_id}/plans", response_model=List[PlanPackage])
async def get_plans(room_id: str):
    """List the itinerary options generated for a room"""
    return require_plans(room_id)

@router.post("/{room_id}/plans/generate", response_model=List[PlanPackage])
async def generate_plans(room_id: str):
    """Generate itinerary options from the members' surveys and score each one"""
    try:
        room = require_room(room_id)
        members = db.get_room_members(room_id)
        surveyed = [m for m in members if m.survey]
        if not surveyed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No surveys completed yet"
            )

        conflict_report = build_conflict_report(members)
        packages = ai_service.generate_initial_packages(
            room,
            [m.survey for m in surveyed],
            conflict_report,
        )
        scored = attach_fit_scores(packages, surveyed)
        db.set_plan_packages(room_id, scored)

        existing_trip = db.get_trip_by_room(room_id)
        if existing_trip:
            db.update_trip(existing_trip.id, conflict_report=conflict_report)

        logger.info("Generated %d plans for room %s", len(scored), room_id)
        return scored
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Plan generation for room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate plans: {str(e)}"
        )

@router.post("/{room_id}/plans/select", response_model=PlanPackage)
async def select_plan(room_id: str, select_data: PlanSelect):
    """Return one plan of the room"""
    plans = require_plans(room_id)
    return find_plan(plans, select_data.plan_id)

@router.post("/{room_id}/plans/vote", response_model=PlanVotes)
async def vote_plan(room_id: str, vote_data: VoteSubmit):
    """Cast or move a member's vote"""
    try:
        members = db.get_room_members(room_id)
        if not any(m.id == vote_data.member_id for m in members):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Member not found in room"
            )

        plans = db.get_plan_packages(room_id) or []
        find_plan(plans, vote_data.plan_id)

        votes = db.get_votes(room_id) or empty_votes()
        cast_vote(votes, vote_data.member_id, vote_data.plan_id)
        db.set_votes(room_id, votes)
        return votes
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Vote in room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error submitting vote: {str(e)}"
        )

@router.get("/{room_id}/plans/votes", response_model=PlanVotes)
async def get_votes(room_id: str):
    """Current tallies with the winner recomputed"""
    votes = db.get_votes(room_id)
    if not votes:
        return empty_votes()
    votes.winner_plan_id = compute_winner(votes)
    return votes

@router.post("/{room_id}/plans/update", response_model=PlanPackage)
async def update_plan(room_id: str, update_data: PlanUpdate):
    """Apply a partial edit to one plan and rescore it"""
    try:
        plans = require_plans(room_id)
        plan = find_plan(plans, update_data.plan_id)
        merged = merge_plan(plan, update_data.updates)
        merged.fit_score = score_plan(merged, db.get_room_members(room_id))

        db.set_plan_packages(room_id, [merged if p.id == plan.id else p for p in plans])
        return merged
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid plan update: {str(e)}"
        )
    except Exception as e:
        logger.exception("Plan update in room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating plan: {str(e)}"
        )

@router.post("/{room_id}/plans/refine", response_model=List[PlanPackage])
async def refine_plan(room_id: str, refine_data: PlanRefine):
    """Refine a plan; the first variant replaces it and the rest are appended"""
    try:
        plans = require_plans(room_id)
        plan = find_plan(plans, refine_data.plan_id)
        variants = ai_service.refine_package(plan, refine_data.constraints)

        taken = {p.id for p in plans}
        refined = []
        for index, variant in enumerate(variants):
            if index == 0:
                variant = variant.model_copy(update={"id": plan.id, "room_id": room_id})
            elif variant.id in taken:
                variant = variant.model_copy(update={"id": str(uuid.uuid4()), "room_id": room_id})
            else:
                variant = variant.model_copy(update={"room_id": room_id})
            taken.add(variant.id)
            refined.append(variant)

        refined = attach_fit_scores(refined, db.get_room_members(room_id))
        updated = [refined[0] if p.id == plan.id else p for p in plans] + refined[1:]
        db.set_plan_packages(room_id, updated)
        return refined
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Plan refinement in room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error refining plan: {str(e)}"
        )
