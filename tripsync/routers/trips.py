import logging
import uuid
from typing import List

from fastapi import APIRouter, HTTPException, status

from tripsync.models import (
    Trip, TripStart, TripStatus, TripReport, TripComplete, ActivitySlot,
    ReplaceSpotRequest, ReplaceSpotApply, PhotoAdd, DayPlan,
)
from tripsync.database import db
from tripsync.routers.lookups import (
    require_room, require_plans, find_plan, require_trip, all_members_ready,
)
from tripsync.services.ai_service import ai_service
from tripsync.services.preference_mediator import build_conflict_report, round_half_up

logger = logging.getLogger(__name__)

router = APIRouter()

def _find_day(trip: Trip, day: int) -> DayPlan:
    day_plan = next((d for d in trip.plan.days if d.day == day), None)
    if not day_plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Day not found"
        )
    return day_plan

def _find_slot_index(day_plan: DayPlan, slot_id: str) -> int:
    for index, slot in enumerate(day_plan.slots):
        if slot.id == slot_id:
            return index
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Slot not found"
    )

def _merge_photos(existing: List[str], new: List[str]) -> List[str]:
    return list(dict.fromkeys([*existing, *new]))

@router.post("/rooms/{room_id}/trips/start", response_model=Trip)
async def start_trip(room_id: str, start_data: TripStart):
    """Start the trip once every member is ready; defaults to the winning plan"""
    try:
        room = require_room(room_id)
        plans = require_plans(room_id)

        plan_id = start_data.plan_id
        if not plan_id:
            votes = db.get_votes(room_id)
            plan_id = votes.winner_plan_id if votes else None
        if not plan_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="planId is required when no plan has won a vote"
            )
        plan = find_plan(plans, plan_id)

        members = db.get_room_members(room_id)
        if not all_members_ready(members):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Not all members are ready"
            )

        trip = db.create_trip(Trip(
            id=str(uuid.uuid4()),
            room_id=room_id,
            plan=plan,
            status=TripStatus.ACTIVE,
            start_date=room.date_range.start,
            current_day=1,
            conflict_report=build_conflict_report(members),
        ))
        logger.info("Trip %s started for room %s with plan %s", trip.id, room_id, plan.id)
        return trip
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Starting trip for room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error starting trip: {str(e)}"
        )

@router.get("/trips/{trip_id}", response_model=Trip)
async def get_trip(trip_id: str):
    """Get a trip with its plan, status and report"""
    return require_trip(trip_id)

@router.post("/trips/{trip_id}/replace-spot", response_model=List[ActivitySlot])
async def replace_spot(trip_id: str, request: ReplaceSpotRequest):
    """Suggest alternatives for one slot using the group's preferences"""
    try:
        trip = require_trip(trip_id)
        day_plan = _find_day(trip, request.day)
        slot = day_plan.slots[_find_slot_index(day_plan, request.slot_id)]

        members = db.get_room_members(trip.room_id)
        surveys = [m.survey for m in members if m.survey]
        conflict_report = trip.conflict_report or build_conflict_report(members)
        # Members without a survey count as the default importance of 3
        instagram_importance = round_half_up(
            (sum(s.instagram_importance for s in surveys) + 3 * (len(members) - len(surveys)))
            / max(len(members), 1)
        )

        context = {
            "day": request.day,
            "location": slot.location,
            "theme_emphasis": trip.plan.theme_emphasis,
            "constraints": [c for s in surveys for c in s.constraints],
            "dislikes": [d for s in surveys for d in s.dislikes],
            "must_haves": [h for s in surveys for h in s.must_haves],
            "priority_nicknames": [m.nickname for m in members if m.survey and m.survey.priority == "high"],
            "instagram_importance": instagram_importance,
            "day_plan_slots": day_plan.slots,
            "consensus": conflict_report.consensus,
            "conflicts": conflict_report.conflicts,
        }
        return ai_service.replace_spot(slot, request.reason, context)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Spot replacement for trip %s failed", trip_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate alternatives: {str(e)}"
        )

@router.post("/trips/{trip_id}/replace-spot/apply", response_model=Trip)
async def apply_replacement(trip_id: str, request: ReplaceSpotApply):
    """Swap a slot of the active trip for the chosen alternative"""
    try:
        trip = require_trip(trip_id)
        if trip.status != TripStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Trip is already completed"
            )
        day_plan = _find_day(trip, request.day)
        day_plan.slots[_find_slot_index(day_plan, request.slot_id)] = request.replacement
        return db.update_trip(trip.id, plan=trip.plan)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Applying replacement for trip %s failed", trip_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error applying replacement: {str(e)}"
        )

@router.post("/trips/{trip_id}/complete", response_model=TripReport)
async def complete_trip(trip_id: str, complete_data: TripComplete):
    """Finish the trip and write its report"""
    try:
        trip = require_trip(trip_id)
        report = ai_service.generate_trip_report(
            trip,
            complete_data.day_emotions,
            complete_data.photos,
            complete_data.feedback,
        )
        db.update_trip(
            trip.id,
            status=TripStatus.COMPLETED,
            report=report,
            photos=_merge_photos(trip.photos, complete_data.photos),
        )
        return report
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Completing trip %s failed", trip_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error completing trip: {str(e)}"
        )

@router.get("/trips/{trip_id}/photos", response_model=dict)
async def list_photos(trip_id: str):
    """List the photo URLs attached to a trip"""
    trip = require_trip(trip_id)
    return {"photos": trip.photos}

@router.post("/trips/{trip_id}/photos", response_model=dict)
async def add_photo(trip_id: str, photo: PhotoAdd):
    """Attach an already-uploaded photo URL to the trip"""
    trip = require_trip(trip_id)
    updated = db.update_trip(trip.id, photos=_merge_photos(trip.photos, [photo.url]))
    return {"photos": updated.photos}
