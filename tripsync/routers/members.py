import logging
import uuid

from fastapi import APIRouter, HTTPException, status

from tripsync.models import Member, MemberJoin, Survey, ReadyUpdate
from tripsync.database import db
from tripsync.routers.lookups import require_room, require_member

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/rooms/{room_id}/members", response_model=Member)
async def join_room(room_id: str, join_data: MemberJoin):
    """Join a room as a new member"""
    try:
        require_room(room_id)
        member = Member(
            id=str(uuid.uuid4()),
            room_id=room_id,
            nickname=join_data.nickname,
            survey_completed=False,
            is_ready=False,
        )
        db.add_member(member)
        logger.info("Member %s joined room %s", member.id, room_id)
        return member
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Joining room %s failed", room_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error joining room: {str(e)}"
        )

@router.post("/members/{member_id}/survey", response_model=Member)
async def submit_survey(member_id: str, survey: Survey):
    """Submit or fully replace a member's travel survey"""
    try:
        require_member(member_id)
        return db.update_member(member_id, survey=survey, survey_completed=True)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Survey submission for %s failed", member_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error submitting survey: {str(e)}"
        )

@router.post("/members/{member_id}/ready", response_model=Member)
async def set_ready(member_id: str, ready_data: ReadyUpdate):
    """Update a member's ready flag"""
    try:
        require_member(member_id)
        return db.update_member(member_id, is_ready=ready_data.is_ready)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Ready update for %s failed", member_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating ready status: {str(e)}"
        )
