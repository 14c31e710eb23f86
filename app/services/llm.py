from typing import Any
import json
import logging
from openai import OpenAI
from app.config import settings

logger = logging.getLogger(__name__)

def get_client() -> OpenAI:
    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY is missing. Please set it in your environment or .env file.")
    return OpenAI(api_key=settings.openai_api_key)

def complete_json(
    client: OpenAI,
    system_prompt: str,
    user_prompt: str,
    seed: int | None = None,
) -> dict[str, Any]:
    """Runs one JSON-mode chat completion and returns the decoded object."""
    response = client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}
        ],
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        response_format={"type": "json_object"},
        seed=seed,
    )

    usage = getattr(response, "usage", None)
    if usage is not None:
        logger.info(
            "LLM usage",
            extra={
                "prompt_tokens": getattr(usage, "prompt_tokens", None),
                "completion_tokens": getattr(usage, "completion_tokens", None),
            },
        )

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise ValueError("No response content from OpenAI")

    result = json.loads(content)
    if not isinstance(result, dict):
        raise ValueError("LLM response is not a JSON object")
    return result
