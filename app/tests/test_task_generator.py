import json
import random
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.services.task_generator import (
    ExistingTaskContext,
    GenerationRequest,
    InvalidGenerationError,
    SlipData,
    TaskGenerator,
    UserProfile,
    local_time,
    season_key,
    time_of_day_key,
)
from app.services.task_prompts import CATEGORIES, EN, TR

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)  # a Tuesday morning


def mock_client(content):
    response = MagicMock()
    response.usage = None
    response.choices = [MagicMock(message=MagicMock(content=content))]
    client = MagicMock()
    client.chat.completions.create.return_value = response
    return client


def make_generator(client=None, seed=7):
    return TaskGenerator(
        client_factory=lambda: client if client is not None else mock_client("{}"),
        rng=random.Random(seed),
        now=lambda: NOW,
    )


def make_request(**overrides):
    fields = {"user": UserProfile(id=1, name="Ali", streak=12, language="en")}
    fields.update(overrides)
    return GenerationRequest(**fields)


def ai_payload(*tasks):
    return json.dumps({"tasks": list(tasks)})


def test_generate_tasks_uses_model_answer():
    content = ai_payload({
        "title": "Sunset photo walk",
        "description": "Walk for 15 minutes and take three photos.",
        "category": "Creative",
        "difficulty": "Easy",
        "estimatedDuration": 15,
        "aiConfidence": 91,
        "motivationalMessage": "Go for it!",
        "tips": ["Leave your phone on silent"],
        "expectedBenefits": ["Calm"],
        "tags": ["outdoor"],
    })
    client = mock_client(content)
    tasks = make_generator(client).generate_tasks(make_request())

    assert len(tasks) == 1
    task = tasks[0]
    assert task.title == "Sunset photo walk"
    assert task.difficulty == "easy"
    assert task.due_date == NOW + timedelta(days=1)
    assert task.ai_confidence == 91
    assert task.estimated_duration == 15
    assert task.tags == ["outdoor"]
    assert "fallback" not in task.tags

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][0]["content"].startswith(EN["system_prompt"])
    assert isinstance(kwargs["seed"], int)


def test_missing_api_key_falls_back():
    def no_client():
        raise RuntimeError("OPENAI_API_KEY is missing")

    generator = TaskGenerator(client_factory=no_client, rng=random.Random(1), now=lambda: NOW)
    tasks = generator.generate_tasks(make_request(count=3, task_type="bulk"))

    assert len(tasks) == 3
    for task in tasks:
        assert task.tags[0] == "fallback"
        assert 60 <= task.ai_confidence <= 79
        assert task.description.endswith("Ali, this task was picked especially for you!")


def test_invalid_json_falls_back():
    tasks = make_generator(mock_client("not json at all")).generate_tasks(make_request())
    assert len(tasks) == 1
    assert tasks[0].tags[0] == "fallback"


def test_missing_tasks_array_falls_back():
    tasks = make_generator(mock_client('{"items": []}')).generate_tasks(make_request())
    assert tasks[0].tags[0] == "fallback"


def test_validate_rejects_task_without_title():
    generator = make_generator()
    payload = {"tasks": [{"description": "x", "category": "Mental", "difficulty": "easy"}]}
    with pytest.raises(InvalidGenerationError):
        generator.validate_tasks(payload, 1)


def test_validate_rejects_empty_list():
    with pytest.raises(InvalidGenerationError):
        make_generator().validate_tasks({"tasks": []}, 1)


def test_validate_normalizes_fields():
    payload = {"tasks": [
        {"title": "A", "description": "a", "category": "Mental", "difficulty": "extreme", "aiConfidence": 20},
        {"title": "B", "description": "b", "category": "Cooking", "difficulty": "HARD", "aiConfidence": 250},
        {"title": "C", "description": "c", "category": "Social", "difficulty": "easy"},
    ]}
    tasks = make_generator().validate_tasks(payload, 2)

    assert len(tasks) == 2
    assert tasks[0].difficulty == "medium"
    assert tasks[0].due_date == NOW + timedelta(days=3)
    assert tasks[0].ai_confidence == 50
    assert tasks[0].estimated_duration == 30
    assert tasks[1].difficulty == "hard"
    assert tasks[1].due_date == NOW + timedelta(days=7)
    assert tasks[1].ai_confidence == 100
    assert tasks[1].category == "Cooking"


def test_validate_defaults_confidence():
    payload = {"tasks": [{"title": "A", "description": "a", "category": "Mental", "difficulty": "easy"}]}
    assert make_generator().validate_tasks(payload, 1)[0].ai_confidence == 75


def test_fallback_count_is_capped_by_pool():
    tasks = make_generator().generate_fallback_tasks(make_request(count=50))
    assert len(tasks) == len(EN["templates"])
    assert len({t.title for t in tasks}) == len(tasks)


def test_fallback_durations_follow_difficulty():
    tasks = make_generator().generate_fallback_tasks(make_request(count=21))
    expected = {"easy": 15, "medium": 30, "hard": 45}
    for task in tasks:
        assert task.estimated_duration == expected[task.difficulty]
        assert task.tags == ["fallback", task.category.lower()]
        assert len(task.tips) == 2
        assert len(task.expected_benefits) == 2


def test_fallback_is_deterministic_with_seed():
    first = make_generator(seed=42).generate_fallback_tasks(make_request(count=3))
    second = make_generator(seed=42).generate_fallback_tasks(make_request(count=3))
    assert [t.title for t in first] == [t.title for t in second]


def test_regenerate_fallback_skips_previous_title():
    existing = ExistingTaskContext(
        category="Physical",
        previous_title="15-Minute Walk",
        previous_description="Go outside",
    )
    request = make_request(task_type="regenerate", count=21, existing_task=existing)
    titles = [t.title for t in make_generator().generate_fallback_tasks(request)]

    assert "15-Minute Walk" not in titles
    # templates sharing the first word are dropped as well
    assert "15-Minute Reading" not in titles
    assert "Mindful Walk" in titles


def test_turkish_is_default_language():
    request = make_request(user=UserProfile(id=1, language="de"))
    generator = make_generator()
    assert generator.language_for(request) == "tr"

    tasks = generator.generate_fallback_tasks(request)
    tr_titles = {t[0] for t in TR["templates"]}
    assert tasks[0].title in tr_titles


def test_motivational_message_without_name_uses_friend():
    request = make_request(user=UserProfile(id=1, language="en"), count=21)
    tasks = make_generator().generate_fallback_tasks(request)
    for task in tasks:
        assert "{" not in task.motivational_message
        assert "None" not in task.motivational_message


def test_prompt_contains_context():
    slip = SlipData(
        reason="Bored late at night",
        triggers=["boredom"],
        mood="low",
        time_of_day="night",
        intensity=7,
        created_at=NOW - timedelta(days=2),
    )
    request = make_request(
        user=UserProfile(
            id=5, name="Ali", streak=12, language="en", goals=["sleep early"],
            completed_tasks=3, failed_tasks=1,
        ),
        slip=slip,
        recent_slips=[slip, SlipData(triggers=["boredom", "stress"], time_of_day="night")],
        recent_task_categories=["Physical"],
    )
    prompt = make_generator().build_prompt(request)

    assert "Streak: 12 days" in prompt
    assert "Last Slip (2 days ago):" in prompt
    assert "Triggers: boredom" in prompt
    assert "Intensity: 7/10" in prompt
    assert "Common Triggers: boredom, stress" in prompt
    assert "Task Success Rate: 75.0%" in prompt
    assert "Goals: sleep early" in prompt
    assert "Time of Day: morning" in prompt
    assert "Day: Tuesday" in prompt
    assert "Season: spring" in prompt
    for category in CATEGORIES:
        assert category in prompt


def test_prompt_includes_regenerate_block():
    existing = ExistingTaskContext(category="Mental", previous_title="Daily Journaling", completion_rate=40)
    request = make_request(task_type="regenerate", existing_task=existing)
    prompt = make_generator().build_prompt(request)
    assert "Daily Journaling" in prompt
    assert "Completion Rate: 40%" in prompt


@pytest.mark.parametrize("hour,expected", [(0, "night"), (5, "night"), (6, "morning"), (12, "afternoon"), (18, "evening"), (23, "evening")])
def test_time_of_day_key(hour, expected):
    assert time_of_day_key(hour) == expected


@pytest.mark.parametrize("month,expected", [(1, "winter"), (3, "spring"), (7, "summer"), (10, "autumn"), (12, "winter")])
def test_season_key(month, expected):
    assert season_key(month) == expected


def test_local_time_uses_user_timezone():
    local = local_time(NOW, "Europe/Istanbul")
    assert local.hour == 12


def test_local_time_unknown_zone_stays_utc():
    assert local_time(NOW, "Mars/Olympus") == NOW


def test_prompt_slip_patterns_keep_first_seen_order_on_ties():
    request = make_request(recent_slips=[
        SlipData(triggers=["stress", "boredom"], time_of_day="evening"),
        SlipData(triggers=["boredom", "stress", "loneliness"], time_of_day="night"),
        SlipData(triggers=["loneliness"]),
    ])
    prompt = make_generator().build_prompt(request)

    assert "Recent Slip Patterns:" in prompt
    assert "Common Triggers: stress, boredom, loneliness" in prompt
    assert "Common Times: evening, night" in prompt


def test_prompt_common_times_most_frequent_first():
    request = make_request(recent_slips=[
        SlipData(time_of_day="evening"),
        SlipData(time_of_day="night"),
        SlipData(time_of_day="night"),
    ])
    assert "Common Times: night, evening" in make_generator().build_prompt(request)


def test_validate_reads_challenges_and_resources():
    payload = {"tasks": [{
        "title": "A", "description": "a", "category": "Mental", "difficulty": "easy",
        "potentialChallenges": ["Late-night urges"],
        "successMetrics": ["Three days in a row"],
        "relatedResources": ["Breathing guide"],
    }]}
    task = make_generator().validate_tasks(payload, 1)[0]
    assert task.challenges == ["Late-night urges"]
    assert task.success_metrics == ["Three days in a row"]
    assert task.resources == ["Breathing guide"]


def test_unexpected_client_error_falls_back():
    client = MagicMock()
    client.chat.completions.create.side_effect = KeyError("choices")
    tasks = make_generator(client).generate_tasks(make_request(count=2))
    assert len(tasks) == 2
    assert all(task.tags[0] == "fallback" for task in tasks)
