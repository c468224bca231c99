from fastapi import HTTPException, status
from typing import List

from tripsync.database import db
from tripsync.models import Room, Member, PlanPackage, Trip

def require_room(room_id: str) -> Room:
    room = db.get_room(room_id)
    if not room:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Room not found"
        )
    return room

def require_member(member_id: str) -> Member:
    member = db.get_member(member_id)
    if not member:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )
    return member

def require_plans(room_id: str) -> List[PlanPackage]:
    plans = db.get_plan_packages(room_id)
    if not plans:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No plans generated yet"
        )
    return plans

def find_plan(plans: List[PlanPackage], plan_id: str) -> PlanPackage:
    plan = next((p for p in plans if p.id == plan_id), None)
    if not plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plan not found"
        )
    return plan

def require_trip(trip_id: str) -> Trip:
    trip = db.get_trip(trip_id)
    if not trip:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found"
        )
    return trip

def all_members_ready(members: List[Member]) -> bool:
    return len(members) > 0 and all(m.is_ready for m in members)
