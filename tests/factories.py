from tripsync.models import Member, Survey, PlanPackage, DayPlan, ActivitySlot


def make_member(member_id, nickname=None, room_id="room-1", **survey_fields):
    survey = Survey(**survey_fields) if survey_fields else None
    return Member(
        id=member_id,
        room_id=room_id,
        nickname=nickname or member_id,
        survey_completed=survey is not None,
        survey=survey,
    )


def make_slot(slot_id, title, description="", tags=None, time="10:00"):
    return ActivitySlot(
        id=slot_id,
        time=time,
        duration=90,
        title=title,
        description=description,
        location="Busan",
        category="activity",
        tags=tags or [],
    )


def make_plan(plan_id="plan-1", slots_per_day=None):
    days = [
        DayPlan(day=index + 1, date=f"2025-05-{index + 1:02d}", slots=slots)
        for index, slots in enumerate(slots_per_day or [])
    ]
    return PlanPackage(id=plan_id, room_id="room-1", name="Test plan", days=days)
