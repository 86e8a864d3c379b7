"""
VitaCare Reminders — LLM-backed vaccine information.

`complete()` routes a prompt to the provider named by LLM_PROVIDER
(anthropic, openai or gemini). `explain_vaccine()` builds the informational
text shown by /info and degrades to the catalog description when no API key
is configured or the provider call fails.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from vitacare.core.vaccines import find_vaccine

logger = logging.getLogger(__name__)

_ProviderFn = Callable[[str, str, str, str, int], Awaitable[str]]

_VACCINE_SYSTEM_PROMPT = (
    "Du bist ein Experte für Impfungen in Deutschland und kennst die "
    "STIKO-Empfehlungen. Antworte immer auf Deutsch und gib präzise, "
    "medizinisch korrekte Informationen. Halte die Antworten kurz und "
    "verständlich für Laien."
)

_VACCINE_USER_PROMPT = (
    'Gib mir Informationen zur Impfung "{name}" in Deutschland:\n'
    "1. Wogegen schützt diese Impfung?\n"
    "2. Für wen wird die Impfung empfohlen?\n"
    "3. Wie ist das Impfschema? (Anzahl der Dosen, Abstände)\n"
    "4. Wann sollte eine Auffrischung erfolgen?\n"
    "5. Wichtige Hinweise oder Nebenwirkungen\n\n"
    "Antworte strukturiert und kurz."
)


async def _anthropic(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        system=system,
        messages=[{"role": "user", "content": user_message}],
    )
    return response.content[0].text


async def _openai(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    from openai import AsyncOpenAI

    client = AsyncOpenAI(api_key=api_key)
    response = await client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
    )
    return response.choices[0].message.content


async def _gemini(api_key: str, model: str, system: str, user_message: str, max_tokens: int) -> str:
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    gm = genai.GenerativeModel(model_name=model, system_instruction=system)
    response = await gm.generate_content_async(
        user_message,
        generation_config=genai.types.GenerationConfig(max_output_tokens=max_tokens),
    )
    return response.text


_PROVIDERS: dict[str, tuple[_ProviderFn, str]] = {
    "anthropic": (_anthropic, "claude-haiku-4-5-20251001"),
    "openai":    (_openai,    "gpt-4o-mini"),
    "gemini":    (_gemini,    "gemini-2.0-flash"),
}


def is_configured() -> bool:
    from vitacare.config import settings

    return bool(settings.LLM_API_KEY)


async def complete(system: str, user_message: str, max_tokens: int = 512) -> str:
    """Send a prompt to the configured provider and return the response text.

    Raises ValueError for an unknown provider; API errors propagate.
    """
    from vitacare.config import settings

    provider_name = settings.LLM_PROVIDER.lower()
    if provider_name not in _PROVIDERS:
        raise ValueError(
            f"Unknown LLM_PROVIDER={provider_name!r}. "
            f"Supported: {', '.join(_PROVIDERS)}"
        )
    fn, default_model = _PROVIDERS[provider_name]
    model = settings.LLM_MODEL or default_model
    return await fn(settings.LLM_API_KEY, model, system, user_message, max_tokens)


def _catalog_text(name: str) -> str:
    vaccine = find_vaccine(name)
    if vaccine is None:
        return f"No information available for '{name}'."
    return f"{vaccine.name}: {vaccine.description} ({vaccine.category.value})"


async def explain_vaccine(name: str) -> str:
    """Informational text about a vaccine, for display only."""
    vaccine = find_vaccine(name)
    display_name = vaccine.name if vaccine else name.strip()

    if not is_configured():
        return _catalog_text(name)

    try:
        text = await complete(
            system=_VACCINE_SYSTEM_PROMPT,
            user_message=_VACCINE_USER_PROMPT.format(name=display_name),
        )
        return text.strip()
    except Exception as exc:
        logger.warning("Vaccine info lookup failed for '%s': %s", display_name, exc)
        return _catalog_text(name)
