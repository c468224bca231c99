import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status

from tripsync.models import Room, RoomCreate, RoomStatus, ConflictReport
from tripsync.database import db
from tripsync.routers.lookups import require_room, all_members_ready
from tripsync.services.preference_mediator import build_conflict_report

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=Room)
async def create_room(room_data: RoomCreate):
    """Create a new trip room"""
    try:
        room = Room(
            id=str(uuid.uuid4()),
            city=room_data.city,
            date_range=room_data.date_range,
            theme=room_data.theme,
            traveler_count=room_data.traveler_count,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        db.create_room(room)
        logger.info("Room %s created for %s", room.id, room.city)
        return room
    except Exception as e:
        logger.exception("Room creation failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating room: {str(e)}"
        )

@router.get("/{room_id}", response_model=RoomStatus)
async def get_room_status(room_id: str):
    """Get room details with members, plans, votes and the active trip"""
    try:
        room = require_room(room_id)
        members = db.get_room_members(room_id)
        return RoomStatus(
            room=room,
            members=members,
            all_ready=all_members_ready(members),
            plan_packages=db.get_plan_packages(room_id),
            votes=db.get_votes(room_id),
            trip=db.get_trip_by_room(room_id),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Fetching room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error fetching room: {str(e)}"
        )

@router.get("/{room_id}/preferences/conflicts", response_model=ConflictReport)
async def get_conflict_report(room_id: str):
    """Build the preference conflict report for everyone in the room"""
    try:
        require_room(room_id)
        members = db.get_room_members(room_id)
        return build_conflict_report(members)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Conflict report for room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error building conflict report: {str(e)}"
        )
