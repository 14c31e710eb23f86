# Copyright (c) 2026 Mohammed Hassan. All rights reserved.
# Proprietary and confidential. Unauthorized copying, modification, distribution, or use is prohibited.

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Literal

import pytz
from pydantic import BaseModel, Field

from app.config import settings
from app.services.common import as_utc, top_counts, utcnow
from app.services.llm import complete_json, get_client
from app.services.task_prompts import CATEGORIES, get_language_pack

logger = logging.getLogger(__name__)

DUE_DAYS = {"easy": 1, "medium": 3, "hard": 7}
FALLBACK_DURATIONS = {"easy": 15, "medium": 30, "hard": 45}
DIFFICULTIES = ("easy", "medium", "hard")
SEED_RANGE = 1_000_000

TaskType = Literal["single", "bulk", "personalized", "regenerate"]


class UserProfile(BaseModel):
    id: int | str
    name: str | None = None
    email: str | None = None
    streak: int = 0
    plan: str | None = None
    is_premium: bool = False
    language: str | None = None
    timezone: str | None = None
    age: int | None = None
    goals: list[str] = Field(default_factory=list)
    completed_tasks: int = 0
    failed_tasks: int = 0
    average_task_duration: float | None = None
    preferred_categories: list[str] = Field(default_factory=list)
    avoided_categories: list[str] = Field(default_factory=list)
    motivation_level: str | None = None
    stress_level: str | None = None
    social_support: str | None = None


class SlipData(BaseModel):
    reason: str | None = None
    triggers: list[str] = Field(default_factory=list)
    mood: str | None = None
    location: str | None = None
    time_of_day: str | None = None
    intensity: int | None = None
    thoughts: str | None = None
    emotions: list[str] = Field(default_factory=list)
    stress_level: int | None = None
    energy_level: int | None = None
    sleep_quality: int | None = None
    created_at: datetime | None = None


class ExistingTaskContext(BaseModel):
    category: str
    difficulty: str | None = None
    previous_title: str
    previous_description: str | None = None
    completion_rate: float = 0


class GenerationRequest(BaseModel):
    user: UserProfile
    slip: SlipData | None = None
    recent_slips: list[SlipData] = Field(default_factory=list)
    task_type: TaskType = "single"
    count: int = Field(default=1, ge=1)
    existing_task: ExistingTaskContext | None = None
    recent_task_categories: list[str] = Field(default_factory=list)
    completed_task_categories: list[str] = Field(default_factory=list)
    failed_task_categories: list[str] = Field(default_factory=list)


class GeneratedTask(BaseModel):
    title: str
    description: str
    category: str
    difficulty: str
    due_date: datetime
    ai_confidence: float
    estimated_duration: int = 30
    tags: list[str] = Field(default_factory=list)
    motivational_message: str = ""
    tips: list[str] = Field(default_factory=list)
    expected_benefits: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    success_metrics: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)


class InvalidGenerationError(ValueError):
    """The model answered, but not with a usable task list."""


def time_of_day_key(hour: int) -> str:
    if hour < 6:
        return "night"
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


def season_key(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"


def local_time(now: datetime, tz_name: str | None) -> datetime:
    """Converts an aware UTC instant to the user's zone; unknown zones stay UTC."""
    if tz_name:
        try:
            return now.astimezone(pytz.timezone(tz_name))
        except pytz.UnknownTimeZoneError:
            logger.warning("Unknown user timezone %s, using UTC", tz_name)
    return now


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


class TaskGenerator:
    """
    Builds a personalized prompt for one user, asks the chat model for tasks in
    JSON mode and normalizes the answer. Any failure along the way falls back
    to the local template pool, so ``generate_tasks`` always returns tasks.
    """

    def __init__(
        self,
        client_factory: Callable[[], Any] = get_client,
        rng: random.Random | None = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.client_factory = client_factory
        self.rng = rng or random.Random()
        self.now = now

    def language_for(self, request: GenerationRequest) -> str:
        language = request.user.language or settings.default_language
        return language if language in ("tr", "en") else "tr"

    def generate_tasks(self, request: GenerationRequest) -> list[GeneratedTask]:
        language = self.language_for(request)
        pack = get_language_pack(language)
        try:
            client = self.client_factory()
            prompt = self.build_prompt(request, pack)
            payload = complete_json(
                client,
                f"{pack['system_prompt']} {pack['no_repeat']}",
                prompt,
                seed=self.rng.randrange(SEED_RANGE),
            )
            tasks = self.validate_tasks(payload, request.count)
            logger.info(
                "AI tasks generated",
                extra={"user_id": str(request.user.id), "task_type": request.task_type, "count": len(tasks)},
            )
            return tasks
        except Exception as e:
            logger.error(
                "AI task generation failed, using fallback tasks: %s", e,
                extra={"user_id": str(request.user.id), "task_type": request.task_type},
            )
            return self.generate_fallback_tasks(request)

    # Context

    def build_user_context(self, request: GenerationRequest, pack: dict) -> str:
        labels = pack["labels"]
        user = request.user
        plan = user.plan or ("premium" if user.is_premium else "free")

        lines = [
            f"{labels['profile']}:",
            f"- {labels['id']}: {user.id}",
            f"- {labels['name']}: {user.name or labels['unknown']}",
            f"- {labels['streak']}: {user.streak} {labels['days']}",
            f"- {labels['plan']}: {plan}",
            f"- {labels['language']}: {self.language_for(request)}",
            f"- {labels['age']}: {user.age if user.age is not None else labels['not_specified']}",
            f"- {labels['motivation']}: {user.motivation_level or labels['medium']}",
            f"- {labels['stress']}: {user.stress_level or labels['medium']}",
            f"- {labels['social_support']}: {user.social_support or labels['medium']}",
        ]

        if user.goals:
            lines.append(f"- {labels['goals']}: {', '.join(user.goals)}")
        if user.preferred_categories:
            lines.append(f"- {labels['preferred']}: {', '.join(user.preferred_categories)}")
        if user.avoided_categories:
            lines.append(f"- {labels['avoided']}: {', '.join(user.avoided_categories)}")

        total = user.completed_tasks + user.failed_tasks
        if total:
            rate = user.completed_tasks / total * 100
            lines.append(f"- {labels['success_rate']}: {rate:.1f}%")
        if user.average_task_duration:
            lines.append(f"- {labels['avg_duration']}: {user.average_task_duration:g} {labels['minutes']}")

        if request.slip:
            lines.append("")
            lines.extend(self._slip_lines(request.slip, labels))

        if request.recent_slips:
            triggers = top_counts((t for s in request.recent_slips for t in s.triggers), 3)
            times = top_counts((s.time_of_day for s in request.recent_slips), 2)
            lines.append("")
            lines.append(f"{labels['patterns']}:")
            lines.append(f"- {labels['common_triggers']}: {', '.join(triggers)}")
            lines.append(f"- {labels['common_times']}: {', '.join(times)}")

        for key, categories in (
            ("recent_tasks", request.recent_task_categories),
            ("completed_tasks", request.completed_task_categories),
            ("failed_tasks", request.failed_task_categories),
        ):
            if categories:
                lines.append("")
                lines.append(f"{labels[key]}: {', '.join(categories[:5])}")

        local = local_time(self.now(), user.timezone)
        lines.append("")
        lines.append(f"{labels['situation']}:")
        lines.append(f"- {labels['time_of_day']}: {pack['times_of_day'][time_of_day_key(local.hour)]}")
        lines.append(f"- {labels['weekday']}: {pack['weekdays'][local.weekday()]}")
        lines.append(f"- {labels['season']}: {pack['seasons'][season_key(local.month)]}")

        return "\n".join(lines)

    def _slip_lines(self, slip: SlipData, labels: dict) -> list[str]:
        created = as_utc(slip.created_at) or self.now()
        days_since = max(0, (self.now() - created).days)

        lines = [f"{labels['last_slip'].format(days=days_since)}:"]
        if slip.reason:
            lines.append(f"- {labels['reason']}: {slip.reason}")
        if slip.triggers:
            lines.append(f"- {labels['triggers']}: {', '.join(slip.triggers)}")
        if slip.mood:
            lines.append(f"- {labels['mood']}: {slip.mood}")
        if slip.time_of_day:
            lines.append(f"- {labels['time']}: {slip.time_of_day}")
        if slip.location:
            lines.append(f"- {labels['location']}: {slip.location}")
        if slip.intensity is not None:
            lines.append(f"- {labels['intensity']}: {slip.intensity}/10")
        if slip.thoughts:
            lines.append(f"- {labels['thoughts']}: {slip.thoughts}")
        if slip.emotions:
            lines.append(f"- {labels['emotions']}: {', '.join(slip.emotions)}")
        if slip.stress_level is not None:
            lines.append(f"- {labels['slip_stress']}: {slip.stress_level}/10")
        if slip.energy_level is not None:
            lines.append(f"- {labels['energy']}: {slip.energy_level}/10")
        if slip.sleep_quality is not None:
            lines.append(f"- {labels['sleep']}: {slip.sleep_quality}/10")
        return lines

    def build_prompt(self, request: GenerationRequest, pack: dict | None = None) -> str:
        pack = pack or get_language_pack(self.language_for(request))
        glossary = ", ".join(f"{name} ({pack['categories'][name]})" for name in CATEGORIES)

        prompt = self.build_user_context(request, pack) + "\n\n"
        prompt += pack["header"].format(task_type=request.task_type, count=request.count, categories=glossary)

        existing = request.existing_task
        if existing:
            prompt += pack["regenerate_block"].format(
                category=existing.category,
                title=existing.previous_title,
                description=existing.previous_description or "",
                completion_rate=f"{existing.completion_rate:g}",
            )

        prompt += pack["body"].format(count=request.count)
        return prompt

    # Validation

    def validate_tasks(self, payload: Any, count: int) -> list[GeneratedTask]:
        if not isinstance(payload, dict) or not isinstance(payload.get("tasks"), list):
            raise InvalidGenerationError("Invalid response format: missing tasks array")

        now = self.now()
        tasks: list[GeneratedTask] = []
        for item in payload["tasks"]:
            if not isinstance(item, dict):
                raise InvalidGenerationError("Invalid task entry")
            for field in ("title", "description", "category", "difficulty"):
                if not item.get(field):
                    raise InvalidGenerationError(f"Invalid task: missing {field}")

            difficulty = str(item["difficulty"]).strip().lower()
            if difficulty not in DIFFICULTIES:
                difficulty = "medium"

            confidence = item.get("aiConfidence")
            try:
                confidence = float(confidence) if confidence else 75.0
            except (TypeError, ValueError):
                confidence = 75.0

            duration = item.get("estimatedDuration")
            try:
                duration = int(duration) if duration else 30
            except (TypeError, ValueError):
                duration = 30

            tasks.append(GeneratedTask(
                title=str(item["title"]),
                description=str(item["description"]),
                category=str(item["category"]),
                difficulty=difficulty,
                due_date=now + timedelta(days=DUE_DAYS[difficulty]),
                ai_confidence=_clamp(confidence, 50, 100),
                estimated_duration=duration,
                tags=_str_list(item.get("tags")),
                motivational_message=str(item.get("motivationalMessage") or ""),
                tips=_str_list(item.get("tips")),
                expected_benefits=_str_list(item.get("expectedBenefits")),
                challenges=_str_list(item.get("potentialChallenges")),
                success_metrics=_str_list(item.get("successMetrics")),
                resources=_str_list(item.get("relatedResources")),
            ))

        tasks = tasks[:count]
        if not tasks:
            raise InvalidGenerationError("No tasks in response")
        return tasks

    # Fallback

    def generate_fallback_tasks(self, request: GenerationRequest) -> list[GeneratedTask]:
        pack = get_language_pack(self.language_for(request))
        pool = list(pack["templates"])

        existing = request.existing_task
        if request.task_type == "regenerate" and existing:
            previous = existing.previous_title.strip().lower()
            first_word = previous.split()[0] if previous else ""
            pool = [
                t for t in pool
                if t[0].lower() != previous and not (first_word and first_word in t[0].lower())
            ]

        self.rng.shuffle(pool)
        now = self.now()
        name = request.user.name
        note = pack["personal_note"].format(name=f"{name}, " if name else "")

        tasks = []
        for title, description, category, difficulty in pool[:min(request.count, len(pool))]:
            tasks.append(GeneratedTask(
                title=title,
                description=f"{description} {note}",
                category=category,
                difficulty=difficulty,
                due_date=now + timedelta(days=DUE_DAYS[difficulty]),
                ai_confidence=self.rng.randint(60, 79),
                estimated_duration=FALLBACK_DURATIONS[difficulty],
                tags=["fallback", category.lower()],
                motivational_message=self._motivational_message(pack, name),
                tips=pack["tips"].get(category, pack["default_tips"])[:2],
                expected_benefits=pack["benefits"].get(category, pack["default_benefits"])[:2],
            ))

        logger.info(
            "Fallback tasks generated",
            extra={"user_id": str(request.user.id), "count": len(tasks)},
        )
        return tasks

    def _motivational_message(self, pack: dict, name: str | None) -> str:
        template = self.rng.choice(pack["motivational_messages"])
        return template.format(name=name or pack["friend"], buddy=name or pack["buddy"])
