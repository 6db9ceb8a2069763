"""Archive insights for the /insights bot command.

With ``insights.enabled`` the user's recent saves are summarised by an LLM
through LiteLLM; otherwise (or when the call fails) a deterministic summary
of tags, content mix and save times is returned.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from datetime import datetime

import litellm

from evermark.db.models import EvermarkRecord

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}

_SYSTEM_PROMPT = (
    "You analyse a person's saved-content archive. Reply in at most four short "
    "lines of plain text: trending topics, content mix, one suggestion. No markdown."
)


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider)
    if env_var is None:
        return
    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 300,
    temperature: float = 0.2,
    num_retries: int = 2,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string."""
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
    )
    return response.choices[0].message.content or ""


def _describe(record: EvermarkRecord) -> str:
    meta = record.metadata
    tags = ", ".join(meta.tags) or "none"
    return f"- [{meta.content_type.value}] {meta.title} (tags: {tags})"


def llm_insights(records: list[EvermarkRecord], model: str) -> str:
    """Summarise *records* with *model*.

    Raises:
        EnvironmentError: If the provider API key is missing.
        litellm.exceptions.APIError: On persistent API failure after retries.
    """
    validate_api_key(model)
    listing = "\n".join(_describe(r) for r in records)
    messages = [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {"role": "user", "content": f"My recent saves:\n{listing}"},
    ]
    return complete(model, messages).strip()


def _hour_label(hour: int) -> str:
    if 5 <= hour < 12:
        return "Mornings"
    if 12 <= hour < 17:
        return "Afternoons"
    if 17 <= hour < 22:
        return "Evenings"
    return "Late nights"


def basic_insights(records: list[EvermarkRecord]) -> str:
    """Deterministic summary: top tags, content mix and peak save time."""
    if not records:
        return "No saves yet. Start with \"save https://...\" to build your archive."

    tag_counts = Counter(tag for r in records for tag in r.metadata.tags)
    type_counts = Counter(r.metadata.content_type.value for r in records)
    hours = Counter()
    for record in records:
        try:
            hours[datetime.fromisoformat((record.created_at or "").replace("Z", "+00:00")).hour] += 1
        except ValueError:
            continue

    total = len(records)
    lines = []
    if tag_counts:
        top = ", ".join(tag for tag, _ in tag_counts.most_common(3))
        lines.append(f"📈 Top Topics: {top}")
    mix = ", ".join(
        f"{round(100 * count / total)}% {name}" for name, count in type_counts.most_common()
    )
    lines.append(f"🔍 Content Mix: {mix}")
    if hours:
        lines.append(f"⏰ Peak Save Time: {_hour_label(hours.most_common(1)[0][0])}")
    return "\n".join(lines)


def generate_insights(
    records: list[EvermarkRecord],
    *,
    enabled: bool = False,
    model: str = "openai/gpt-4o-mini",
) -> str:
    """Return insights text, preferring the LLM when *enabled*."""
    if enabled and records:
        try:
            text = llm_insights(records, model)
            if text:
                return text
        except Exception as exc:
            logger.warning("LLM insights failed (%s); using basic summary", exc)
    return basic_insights(records)
