import json
import logging
import uuid
from datetime import date, timedelta
from typing import Dict, List, Any, Optional

import google.generativeai as genai
from pydantic import BaseModel

from tripsync.config import settings
from tripsync.models import (
    Room, Survey, PlanPackage, DayPlan, ActivitySlot, ConflictReport,
    Trip, TripReport, TripReportCard,
)
from tripsync.services.preference_mediator import budget_to_score, score_to_budget, round_half_up

logger = logging.getLogger(__name__)

class AIUnavailableError(RuntimeError):
    pass

# Loose shapes of what Gemini returns; every field may be missing

class RawSlot(BaseModel):
    id: Optional[str] = None
    time: Optional[str] = None
    duration: Optional[int] = None
    title: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None

class RawDay(BaseModel):
    day: Optional[int] = None
    date: Optional[str] = None
    summary: Optional[str] = None
    slots: Optional[List[RawSlot]] = None

class RawPackage(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    themeEmphasis: Optional[List[str]] = None
    days: Optional[List[RawDay]] = None

class ItineraryResult(BaseModel):
    packages: List[RawPackage] = []

class ReplacementResult(BaseModel):
    alternatives: List[RawSlot] = []

class RawReportCard(BaseModel):
    title: str
    body: str
    tags: Optional[List[str]] = None
    day: Optional[int] = None

class ReportResult(BaseModel):
    summary: Optional[str] = None
    highlights: Optional[List[str]] = None
    cards: Optional[List[RawReportCard]] = None

SLOT_JSON_SHAPE = (
    '{"id": string, "time": "HH:MM", "duration": minutes, "title": string, '
    '"description": string, "location": string, "category": string, "tags": [string]}'
)

DEFAULT_SLOT_TIMES = ["09:00", "11:30", "14:00", "16:30", "19:00", "21:00"]
FALLBACK_CATEGORIES = ["cafe", "museum", "shopping", "restaurant", "park"]

class AIService:
    def __init__(self):
        self.model = None
        self._configured_key = None

    def _get_model(self):
        if not settings.ai_enabled:
            raise AIUnavailableError("GEMINI_API_KEY is missing or AI generation is disabled")
        if self.model is None or self._configured_key != settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)
            self.model = genai.GenerativeModel(settings.gemini_model)
            self._configured_key = settings.gemini_api_key
        return self.model

    def _generate_json(self, prompt: str) -> Dict[str, Any]:
        """Call Gemini and return the JSON object in its reply"""
        model = self._get_model()
        response = model.generate_content(
            prompt,
            generation_config={
                "temperature": settings.ai_temperature,
                "response_mime_type": "application/json",
            },
        )
        text = response.text or ""
        start_idx = text.find('{')
        end_idx = text.rfind('}') + 1
        if start_idx == -1 or end_idx <= 0:
            raise ValueError("Empty or non-JSON response from Gemini")
        return json.loads(text[start_idx:end_idx])

    # --- Itinerary packages ---------------------------------------------

    def generate_initial_packages(
        self,
        room: Room,
        surveys: List[Survey],
        conflict_report: Optional[ConflictReport] = None,
    ) -> List[PlanPackage]:
        """Draft itinerary options for a room, falling back to templates"""
        day_count = self._get_day_count(room)
        prompt = self._build_itinerary_prompt(room, surveys, day_count, conflict_report)

        try:
            raw = ItineraryResult.model_validate(self._generate_json(prompt))
            packages = self._normalize_packages(raw, room, day_count)
            if packages:
                return packages
            raise ValueError("Gemini returned no packages")
        except Exception as e:
            if not settings.fallback_to_templates:
                raise
            logger.warning("Falling back to template packages: %s", e)

        return self._generate_template_packages(room, day_count)

    def refine_package(self, plan: PlanPackage, constraints: List[str]) -> List[PlanPackage]:
        """Ask Gemini to tighten an existing plan; returns one or more variants"""
        start_date = plan.days[0].date if plan.days and plan.days[0].date else date.today().isoformat()
        end_date = plan.days[-1].date if plan.days and plan.days[-1].date else start_date
        fallback_city = plan.days[0].slots[0].location if plan.days and plan.days[0].slots else "서울"
        updated_name = f"{plan.name} (refined)"
        if constraints:
            updated_description = f"{plan.description or '기본 일정'} · 반영사항: {', '.join(constraints)}"
        else:
            updated_description = plan.description or "AI refined plan"

        prompt = "\n".join([
            "You are refining an existing multi-day travel itinerary. Improve realism, pacing, and cohesion.",
            "Respect existing structure while tightening transitions, adding brief summaries, and keeping times feasible.",
            f"Current plan: {plan.model_dump_json(by_alias=True, exclude={'fit_score'})}",
            f"Constraints to honor: {', '.join(constraints)}" if constraints else "No additional constraints.",
            self._itinerary_shape(max(len(plan.days), 1)),
            "Return JSON only.",
        ])

        try:
            raw = ItineraryResult.model_validate(self._generate_json(prompt))
            pseudo_room = Room(
                id=plan.room_id,
                city=fallback_city,
                date_range={"start": start_date, "end": end_date},
                theme=plan.theme_emphasis,
                traveler_count=0,
                created_at="",
            )
            normalized = self._normalize_packages(raw, pseudo_room, max(len(plan.days), 1))
            if normalized:
                return [
                    pkg.model_copy(update={
                        "name": pkg.name or updated_name,
                        "description": pkg.description or updated_description,
                    })
                    for pkg in normalized
                ]
        except Exception as e:
            if not settings.fallback_to_templates:
                raise
            logger.warning("refine_package fallback used: %s", e)

        return [
            plan.model_copy(update={"name": updated_name, "description": updated_description, "fit_score": None}),
            plan.model_copy(update={
                "id": str(uuid.uuid4()),
                "name": f"{plan.name} (alt)",
                "description": f"{updated_description} · 여유로운 이동 동선",
                "fit_score": None,
            }),
        ]

    # --- Spot replacement -----------------------------------------------

    def replace_spot(self, current_slot: ActivitySlot, reason: str, context: Dict[str, Any]) -> List[ActivitySlot]:
        """Suggest alternatives for one slot of an active trip"""
        location = context.get("location") or current_slot.location
        prompt = self._build_replacement_prompt(current_slot, reason, context)

        try:
            raw = ReplacementResult.model_validate(self._generate_json(prompt))
            alternatives = self._normalize_alternatives(raw, current_slot, location)
            if alternatives:
                return alternatives
            raise ValueError("Gemini returned no alternatives")
        except Exception as e:
            if not settings.fallback_to_templates:
                raise
            logger.warning("replace_spot fallback used: %s", e)

        return self._generate_fallback_alternatives(current_slot, reason, location)

    # --- Trip report ----------------------------------------------------

    def generate_trip_report(
        self,
        trip: Trip,
        day_emotions: List[str],
        photos: List[str],
        feedback: str,
    ) -> TripReport:
        """Write the post-trip story; falls back to one card per day"""
        plan = trip.plan
        first_location = plan.days[0].slots[0].location if plan.days and plan.days[0].slots else "여행지"
        itinerary = " | ".join(
            f"Day {day.day}: {', '.join(slot.title for slot in day.slots)}" for day in plan.days
        )
        prompt = "\n".join([
            "Create a short trip report as JSON for a completed group trip.",
            f"Destination: {first_location}. Days: {len(plan.days)}.",
            f"Itinerary summary: {itinerary}",
            f"Daily emotions: {', '.join(day_emotions)}" if day_emotions else "Daily emotions: not provided.",
            f"Group feedback: {feedback}" if feedback else "Group feedback: none.",
            f"Photos count: {len(photos)}" if photos else "Photos: none.",
            'Return JSON: { "summary": string, "highlights": [string], '
            '"cards": [{ "title": string, "body": string, "tags": [string], "day": number }] }',
        ])

        try:
            raw = ReportResult.model_validate(self._generate_json(prompt))
            return TripReport(
                trip_id=trip.id,
                summary=raw.summary or "Trip completed",
                highlights=raw.highlights or [],
                cards=[
                    TripReportCard(title=card.title, body=card.body, tags=card.tags or [], day=card.day)
                    for card in raw.cards or []
                ],
            )
        except Exception as e:
            if not settings.fallback_to_templates:
                raise
            logger.warning("Report generation fallback used: %s", e)

        return TripReport(
            trip_id=trip.id,
            summary="Trip completed",
            highlights=["즐거운 추억을 남겼어요!", "다음 여행도 함께해요!"],
            cards=[
                TripReportCard(
                    title=f"Day {day.day} 리뷰",
                    body=", ".join(slot.title for slot in day.slots),
                    tags=["auto"],
                    day=day.day,
                )
                for day in plan.days
            ],
        )

    # --- Prompt builders ------------------------------------------------

    def _build_itinerary_prompt(
        self,
        room: Room,
        surveys: List[Survey],
        day_count: int,
        conflict_report: Optional[ConflictReport] = None,
    ) -> str:
        summary = self._summarize_surveys(surveys)
        wake_times = [s.wake_up_time for s in surveys if s.wake_up_time]
        typical_wake = wake_times[0] if wake_times else "08:00"
        nightlife_ratio = len([s for s in surveys if s.nightlife]) / (len(surveys) or 1)

        lines = [
            "You are a Korean AI travel planner generating group-friendly itineraries.",
            f"Destination: {room.city}. Dates: {room.date_range.start} to {room.date_range.end} ({day_count} days).",
            f"Themes to highlight: {', '.join(room.theme) or 'balancing rest and exploration'}.",
            f"Traveler count: {room.traveler_count}. Typical wake-up: {typical_wake}. "
            f"Nightlife interest: {'Yes' if nightlife_ratio >= 0.4 else 'Low'}.",
            f"Group emotions: {', '.join(summary['emotions']) or 'balanced'}. "
            f"Dislikes: {', '.join(summary['dislikes']) or 'none declared'}.",
            f"Constraints: {', '.join(summary['constraints']) or 'none declared'}. Budget: {summary['budget']}. "
            f"Instagram importance (1-5 avg): {summary['instagram_importance']}.",
        ]
        if conflict_report:
            consensus = conflict_report.consensus
            lines.append(
                f"Consensus: budget {consensus.budget}, wake window "
                f"{consensus.wake_window.start}-{consensus.wake_window.end}, "
                f"dominant emotions {', '.join(consensus.dominant_emotions) or 'none'}."
            )
            if conflict_report.conflicts:
                lines.append("Known conflicts to mediate: " + "; ".join(
                    f"{c.type} ({c.severity}): {c.description}" for c in conflict_report.conflicts
                ))
        lines.extend([
            f"Create exactly {settings.max_plan_packages} distinct itinerary packages, "
            "varied by vibe (healing, balanced, adventurous, foodie, cultural).",
            "Keep daily schedules realistic: chronological times, 3-5 slots per day, "
            "durations 60-210 minutes, reasonable meal times.",
            "Prefer avoiding dislikes and honoring constraints. Include at least one visually "
            "appealing spot per day if instagram importance is high.",
            self._itinerary_shape(day_count),
            "Return JSON only. Do not include any text outside JSON.",
        ])
        return "\n".join(lines)

    def _itinerary_shape(self, day_count: int) -> str:
        return (
            '{"packages": [{"id": string, "name": string, "description": string, '
            '"themeEmphasis": [string], "days": [{"day": number, "date": "YYYY-MM-DD", '
            f'"summary": string, "slots": [{SLOT_JSON_SHAPE}]}}]}}]}}'
            f" with exactly {day_count} days per package."
        )

    def _build_replacement_prompt(self, current_slot: ActivitySlot, reason: str, context: Dict[str, Any]) -> str:
        other_slots = " | ".join(
            f"{slot.time} {slot.title} ({slot.location})"
            for slot in context.get("day_plan_slots", [])
            if slot.id != current_slot.id
        )
        lines = [
            "You are replacing a single activity inside an existing itinerary. Keep timing cohesive and location-aware.",
            f'Current slot (to replace): {current_slot.time} for {current_slot.duration} minutes, '
            f'"{current_slot.title}" in {context.get("location") or current_slot.location}.',
            f"Reason: {reason}. Day #: {context.get('day')}. Nearby plan: {other_slots or 'no other slots provided'}.",
            f"Avoid dislikes: {', '.join(context.get('dislikes', [])) or 'none declared'}. "
            f"Respect constraints: {', '.join(context.get('constraints', [])) or 'none declared'}.",
            f"Must-haves: {', '.join(context.get('must_haves', [])) or 'none declared'}. "
            f"High-priority travelers: {', '.join(context.get('priority_nicknames', [])) or 'none'}.",
            f"Themes to preserve: {', '.join(context.get('theme_emphasis', [])) or 'balanced experience'}.",
            f"Instagram importance (1-5): {context.get('instagram_importance', 3)}. Prefer photogenic options if >=4.",
        ]
        consensus = context.get("consensus")
        if consensus:
            lines.append(f"Group consensus: budget {consensus.budget}, dominant emotions "
                         f"{', '.join(consensus.dominant_emotions) or 'none'}.")
        lines.extend([
            "Suggest 2-3 alternatives. Keep start times near the original slot (±60 minutes) "
            "and durations similar unless explicitly improved.",
            f'Return JSON only: {{"alternatives": [{SLOT_JSON_SHAPE}]}}',
        ])
        return "\n".join(lines)

    # --- Normalizers & fallbacks ----------------------------------------

    def _normalize_packages(self, raw: ItineraryResult, room: Room, day_count: int) -> List[PlanPackage]:
        start_date = self._parse_date(room.date_range.start)
        packages = []
        for pkg_index, pkg in enumerate(raw.packages[:settings.max_plan_packages]):
            days = [
                self._normalize_day_plan(day, day_index, start_date, room.city)
                for day_index, day in enumerate((pkg.days or [])[:day_count])
            ]
            packages.append(PlanPackage(
                id=pkg.id or str(uuid.uuid4()),
                room_id=room.id,
                name=pkg.name or f"AI Package {pkg_index + 1}",
                description=pkg.description or "AI generated itinerary",
                days=days,
                theme_emphasis=pkg.themeEmphasis or self._derive_themes(room.theme),
            ))
        return packages

    def _normalize_day_plan(self, day: RawDay, index: int, start_date: date, city: str) -> DayPlan:
        slots = [
            ActivitySlot(
                id=slot.id or str(uuid.uuid4()),
                time=slot.time or DEFAULT_SLOT_TIMES[slot_index % len(DEFAULT_SLOT_TIMES)],
                duration=slot.duration or 90,
                title=slot.title or slot.name or f"활동 {slot_index + 1}",
                description=slot.description or slot.notes or "",
                location=slot.location or city,
                category=slot.category or "sightseeing",
                tags=slot.tags or ["auto"],
            )
            for slot_index, slot in enumerate(day.slots or [])
        ]
        return DayPlan(
            day=day.day or index + 1,
            date=day.date or (start_date + timedelta(days=index)).isoformat(),
            summary=day.summary,
            slots=slots,
        )

    def _normalize_alternatives(self, raw: ReplacementResult, current_slot: ActivitySlot, location: str) -> List[ActivitySlot]:
        return [
            ActivitySlot(
                id=alt.id or str(uuid.uuid4()),
                time=alt.time or current_slot.time,
                duration=alt.duration or current_slot.duration,
                title=alt.title or f"대체 활동 {idx + 1}",
                description=alt.description or "AI가 제안한 대체 활동",
                location=alt.location or location,
                category=alt.category or current_slot.category or "activity",
                tags=alt.tags or ["alternative"],
            )
            for idx, alt in enumerate(raw.alternatives[:settings.max_replacement_alternatives])
        ]

    def _generate_template_packages(self, room: Room, day_count: int) -> List[PlanPackage]:
        return [
            self._create_template_package(room, day_count, "healing", "힐링 중심형", "여유로운 일정, 자연과 휴식"),
            self._create_template_package(room, day_count, "balanced", "밸런스형", "관광과 휴식의 균형"),
            self._create_template_package(room, day_count, "adventure", "모험 중심형", "액티비티와 새로운 경험"),
        ]

    def _create_template_package(self, room: Room, day_count: int, vibe: str, name: str, description: str) -> PlanPackage:
        start_date = self._parse_date(room.date_range.start)
        days = [
            DayPlan(
                day=i + 1,
                date=(start_date + timedelta(days=i)).isoformat(),
                slots=self._generate_day_slots(vibe, room.city),
            )
            for i in range(day_count)
        ]
        return PlanPackage(
            id=str(uuid.uuid4()),
            room_id=room.id,
            name=name,
            description=description,
            days=days,
            theme_emphasis=self._derive_themes([vibe]),
        )

    def _generate_fallback_alternatives(self, current_slot: ActivitySlot, reason: str, location: str) -> List[ActivitySlot]:
        return [
            ActivitySlot(
                id=str(uuid.uuid4()),
                time=current_slot.time,
                duration=current_slot.duration,
                title=f"대체 활동 {idx + 1}",
                description=f"{reason} 상황에 맞춘 대안 제안",
                location=location,
                category=FALLBACK_CATEGORIES[idx % len(FALLBACK_CATEGORIES)],
                tags=["fallback", "alternative"],
            )
            for idx in range(settings.max_replacement_alternatives)
        ]

    def _generate_day_slots(self, vibe: str, city: str) -> List[ActivitySlot]:
        if vibe == "healing":
            rows = [
                ("09:00", 120, "여유로운 브런치", f"{city}의 인기 브런치 카페", "food", ["브런치", "카페"]),
                ("11:30", 180, "자연 산책", "공원 또는 해변 산책", "nature", ["힐링", "자연"]),
                ("15:00", 120, "스파/마사지", "힐링 타임", "wellness", ["휴식", "힐링"]),
                ("18:00", 120, "로컬 맛집 저녁", "여유로운 저녁 식사", "food", ["맛집", "저녁"]),
            ]
        elif vibe == "adventure":
            rows = [
                ("08:00", 60, "빠른 아침", "간단한 아침 식사", "food", ["아침"]),
                ("09:30", 240, "액티비티 체험", "패러글라이딩, 서핑 등", "activity", ["모험", "액티비티"]),
                ("14:00", 120, "로컬 투어", "현지 명소 탐방", "tour", ["관광", "문화"]),
                ("17:00", 180, "나이트라이프", "바/클럽", "nightlife", ["밤문화", "파티"]),
            ]
        else:
            rows = [
                ("09:00", 90, "호텔 조식", "여유로운 아침", "food", ["아침"]),
                ("11:00", 150, "주요 관광지", f"{city} 대표 명소", "sightseeing", ["관광", "명소"]),
                ("14:00", 90, "점심 & 쇼핑", "식사 + 기념품", "shopping", ["쇼핑", "점심"]),
                ("16:30", 120, "카페 휴식", "인스타 감성 카페", "cafe", ["카페", "휴식"]),
                ("19:00", 120, "저녁 식사", "로컬 맛집", "food", ["저녁", "맛집"]),
            ]
        return [
            ActivitySlot(
                id=str(uuid.uuid4()), time=time, duration=duration, title=title,
                description=description, location=city, category=category, tags=tags,
            )
            for time, duration, title, description, category, tags in rows
        ]

    # --- Utilities ------------------------------------------------------

    def _summarize_surveys(self, surveys: List[Survey]) -> Dict[str, Any]:
        emotions: Dict[str, None] = {}
        dislikes: Dict[str, None] = {}
        constraints: Dict[str, None] = {}
        budget_score = 0
        insta_score = 0
        for survey in surveys:
            emotions.update(dict.fromkeys(survey.emotions))
            dislikes.update(dict.fromkeys(survey.dislikes))
            constraints.update(dict.fromkeys(survey.constraints))
            budget_score += budget_to_score(survey.budget_level)
            insta_score += survey.instagram_importance or 3

        count = max(len(surveys), 1)
        return {
            "emotions": list(emotions),
            "dislikes": list(dislikes),
            "constraints": list(constraints),
            "budget": score_to_budget(round_half_up(budget_score / count)),
            "instagram_importance": round_half_up(insta_score / count),
        }

    def _derive_themes(self, themes: List[str]) -> List[str]:
        if not themes:
            return ["힐링", "탐험", "미식"]
        if len(themes) >= 3:
            return themes[:3]
        return (list(themes) + ["여유", "로컬"])[:3]

    def _parse_date(self, value: str) -> date:
        try:
            return date.fromisoformat(value[:10])
        except (TypeError, ValueError):
            return date.today()

    def _get_day_count(self, room: Room) -> int:
        start = self._parse_date(room.date_range.start)
        end = self._parse_date(room.date_range.end)
        return max(1, (end - start).days + 1)

# Global AI service instance
ai_service = AIService()
