from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any
from enum import Enum

class CamelModel(BaseModel):
    """Base model whose JSON form uses camelCase keys"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

class BudgetLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class StaminaLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class ConflictType(str, Enum):
    BUDGET = "budget"
    WAKE = "wake"
    DISLIKE = "dislike"
    CONSTRAINT = "constraint"
    INSTAGRAM = "instagram"

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

class TripStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

# Rooms and members

class DateRange(CamelModel):
    start: str
    end: str

class Room(CamelModel):
    id: str
    city: str
    date_range: DateRange
    theme: List[str] = []
    traveler_count: int = 1
    created_at: str

class Survey(CamelModel):
    emotions: List[str] = []
    dislikes: List[str] = []
    budget_level: Optional[BudgetLevel] = None
    constraints: List[str] = []
    wake_up_time: Optional[str] = None
    instagram_importance: int = Field(3, ge=1, le=5)
    priority: Optional[Priority] = None
    must_haves: List[str] = []
    wake_flexibility_minutes: Optional[int] = None
    travel_purpose: List[str] = []
    stamina_level: Optional[StaminaLevel] = None
    max_travel_minutes: Optional[int] = None
    nightlife: bool = False

class Member(CamelModel):
    id: str
    room_id: str
    nickname: str
    survey_completed: bool = False
    is_ready: bool = False
    survey: Optional[Survey] = None

# Preference mediation

class PreferenceProfile(CamelModel):
    member_id: str
    nickname: str
    budget_score: int
    wake_minutes: int
    emotions: List[str] = []
    dislikes: List[str] = []
    constraints: List[str] = []
    instagram_importance: int = 3

class WakeWindow(CamelModel):
    start: str
    end: str

class ConsensusBand(CamelModel):
    budget: BudgetLevel
    wake_window: WakeWindow
    dominant_emotions: List[str] = []
    shared_constraints: List[str] = []

class ConflictItem(CamelModel):
    type: ConflictType
    severity: Severity
    description: str
    members_involved: List[str] = []

class ConflictReport(CamelModel):
    profiles: List[PreferenceProfile] = []
    consensus: ConsensusBand
    conflicts: List[ConflictItem] = []

# Itineraries

class ActivitySlot(CamelModel):
    id: str
    time: str
    duration: int = 90
    title: str
    description: str = ""
    location: str = ""
    category: str = ""
    tags: List[str] = []

class DayPlan(CamelModel):
    day: int
    date: str = ""
    summary: Optional[str] = None
    slots: List[ActivitySlot] = []

class MemberFit(CamelModel):
    member_id: str
    nickname: str
    score: int
    notes: List[str] = []

class PlanFitScore(CamelModel):
    group_score: int
    per_member: List[MemberFit] = []
    drivers: List[str] = []
    warnings: List[str] = []

class PlanPackage(CamelModel):
    id: str
    room_id: str
    name: str
    description: str = ""
    days: List[DayPlan] = []
    theme_emphasis: List[str] = []
    fit_score: Optional[PlanFitScore] = None

class PlanVotes(CamelModel):
    tallies: Dict[str, int] = {}
    voters: Dict[str, str] = {}
    winner_plan_id: Optional[str] = None

# Trips

class TripReportCard(CamelModel):
    title: str
    body: str
    tags: List[str] = []
    day: Optional[int] = None

class TripReport(CamelModel):
    trip_id: str
    summary: str
    highlights: List[str] = []
    cards: List[TripReportCard] = []
    share_url: Optional[str] = None

class Trip(CamelModel):
    id: str
    room_id: str
    plan: PlanPackage
    status: TripStatus = TripStatus.ACTIVE
    start_date: str
    current_day: int = 1
    conflict_report: Optional[ConflictReport] = None
    report: Optional[TripReport] = None
    photos: List[str] = []

class RoomStatus(CamelModel):
    room: Room
    members: List[Member] = []
    all_ready: bool = False
    plan_packages: Optional[List[PlanPackage]] = None
    votes: Optional[PlanVotes] = None
    trip: Optional[Trip] = None

# Request bodies

class RoomCreate(CamelModel):
    city: str
    date_range: DateRange
    theme: List[str] = []
    traveler_count: int = 1

class MemberJoin(CamelModel):
    nickname: str

class ReadyUpdate(CamelModel):
    is_ready: bool

class PlanSelect(CamelModel):
    plan_id: str

class VoteSubmit(CamelModel):
    member_id: str
    plan_id: str

class PlanUpdate(CamelModel):
    plan_id: str
    updates: Dict[str, Any]

class PlanRefine(CamelModel):
    plan_id: str
    constraints: List[str] = []

class TripStart(CamelModel):
    plan_id: Optional[str] = None

class ReplaceSpotRequest(CamelModel):
    slot_id: str
    day: int
    reason: str = "weather"

class ReplaceSpotApply(CamelModel):
    slot_id: str
    day: int
    replacement: ActivitySlot

class TripComplete(CamelModel):
    day_emotions: List[str] = []
    photos: List[str] = []
    feedback: str = ""

class PhotoAdd(CamelModel):
    url: str
