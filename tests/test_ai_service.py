import pytest

from tripsync.config import settings
from tripsync.models import Room, Survey, Trip
from tripsync.services.ai_service import AIService, AIUnavailableError
from tripsync.services.preference_mediator import build_conflict_report
from tests.factories import make_member, make_plan, make_slot


@pytest.fixture
def service():
    return AIService()


@pytest.fixture
def room():
    return Room(
        id="room-1",
        city="Busan",
        date_range={"start": "2025-05-01", "end": "2025-05-03"},
        theme=["healing"],
        traveler_count=2,
        created_at="2025-04-01T00:00:00",
    )


def test_model_unavailable_without_key(service):
    with pytest.raises(AIUnavailableError):
        service._get_model()


def test_template_packages_without_key(service, room):
    packages = service.generate_initial_packages(room, [Survey(emotions=["healing"])])

    assert [p.name for p in packages] == ["힐링 중심형", "밸런스형", "모험 중심형"]
    for package in packages:
        assert package.room_id == "room-1"
        assert [d.date for d in package.days] == ["2025-05-01", "2025-05-02", "2025-05-03"]
        assert all(slot.location == "Busan" for d in package.days for slot in d.slots)
    assert len({p.id for p in packages}) == 3


def test_day_count_is_at_least_one(service, room):
    room.date_range.end = "2025-04-20"
    assert service._get_day_count(room) == 1


def test_gemini_packages_are_normalized(service, room, monkeypatch):
    reply = {
        "packages": [{
            "name": "Sea breeze",
            "days": [
                {"slots": [{"name": "Beach walk", "notes": "Morning stroll"}, {"title": "Lunch", "time": "12:30"}]},
                {"day": 2, "date": "2025-05-02", "slots": []},
                {"slots": []},
                {"slots": []},
            ],
        }],
    }
    monkeypatch.setattr(service, "_generate_json", lambda prompt: reply)

    packages = service.generate_initial_packages(room, [Survey()])

    assert len(packages) == 1
    package = packages[0]
    assert package.name == "Sea breeze"
    assert package.description == "AI generated itinerary"
    assert package.theme_emphasis == ["healing", "여유", "로컬"]
    assert len(package.days) == 3
    first, second = package.days[0].slots
    assert first.title == "Beach walk"
    assert first.description == "Morning stroll"
    assert first.time == "09:00"
    assert first.location == "Busan"
    assert first.tags == ["auto"]
    assert second.time == "12:30"
    assert package.days[0].date == "2025-05-01"
    assert package.days[2].day == 3


def test_gemini_failure_falls_back_to_templates(service, room, monkeypatch):
    def broken(prompt):
        raise ValueError("Empty or non-JSON response from Gemini")

    monkeypatch.setattr(service, "_generate_json", broken)
    packages = service.generate_initial_packages(room, [Survey()])
    assert len(packages) == 3


def test_empty_package_list_falls_back(service, room, monkeypatch):
    monkeypatch.setattr(service, "_generate_json", lambda prompt: {"packages": []})
    assert len(service.generate_initial_packages(room, [Survey()])) == 3


def test_prompt_mentions_consensus_and_conflicts(service, room):
    report = build_conflict_report([
        make_member("a", budget_level="low"),
        make_member("b", budget_level="high"),
    ])
    prompt = service._build_itinerary_prompt(room, [], 3, report)
    assert "Consensus: budget medium" in prompt
    assert "budget (high): Wide budget gap between travelers" in prompt


def test_replace_spot_fallback_keeps_timing(service):
    slot = make_slot("s1", "Beach", time="14:00")
    alternatives = service.replace_spot(slot, "rain", {"day": 1})

    assert len(alternatives) == 3
    assert all(alt.time == "14:00" and alt.duration == 90 for alt in alternatives)
    assert [alt.category for alt in alternatives] == ["cafe", "museum", "shopping"]
    assert alternatives[0].description == "rain 상황에 맞춘 대안 제안"
    assert alternatives[0].location == "Busan"


def test_replace_spot_normalizes_and_caps(service, monkeypatch):
    reply = {"alternatives": [{"title": f"Option {i}"} for i in range(5)]}
    monkeypatch.setattr(service, "_generate_json", lambda prompt: reply)

    slot = make_slot("s1", "Beach", time="14:00")
    alternatives = service.replace_spot(slot, "rain", {"location": "Haeundae"})

    assert [alt.title for alt in alternatives] == ["Option 0", "Option 1", "Option 2"]
    assert alternatives[0].location == "Haeundae"
    assert alternatives[0].category == "activity"
    assert alternatives[0].tags == ["alternative"]


def test_refine_fallback_returns_refined_and_alt(service):
    plan = make_plan("plan-1", [[make_slot("s1", "Walk")]])
    refined, alternative = service.refine_package(plan, ["less walking"])

    assert refined.id == "plan-1"
    assert refined.name == "Test plan (refined)"
    assert refined.description == "기본 일정 · 반영사항: less walking"
    assert alternative.id != "plan-1"
    assert alternative.name == "Test plan (alt)"


def test_trip_report_fallback_has_a_card_per_day(service):
    plan = make_plan("plan-1", [
        [make_slot("s1", "Walk"), make_slot("s2", "Dinner")],
        [make_slot("s3", "Museum")],
    ])
    trip = Trip(id="trip-1", room_id="room-1", plan=plan, start_date="2025-05-01")

    report = service.generate_trip_report(trip, ["happy"], [], "")

    assert report.trip_id == "trip-1"
    assert report.summary == "Trip completed"
    assert [card.body for card in report.cards] == ["Walk, Dinner", "Museum"]
    assert [card.day for card in report.cards] == [1, 2]


def test_trip_report_from_gemini(service, monkeypatch):
    reply = {
        "summary": "A calm weekend",
        "cards": [{"title": "Day 1", "body": "Sunset at the pier", "day": 1}],
    }
    monkeypatch.setattr(service, "_generate_json", lambda prompt: reply)
    trip = Trip(id="trip-1", room_id="room-1", plan=make_plan(), start_date="2025-05-01")

    report = service.generate_trip_report(trip, [], [], "great")

    assert report.summary == "A calm weekend"
    assert report.highlights == []
    assert report.cards[0].tags == []


def test_fallback_can_be_disabled(service, room, monkeypatch):
    monkeypatch.setattr(settings, "fallback_to_templates", False)
    with pytest.raises(AIUnavailableError):
        service.generate_initial_packages(room, [Survey()])
