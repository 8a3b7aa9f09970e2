from openai import AsyncOpenAI

from config import settings


def get_trust_client() -> AsyncOpenAI | None:
    """Client for the trust-score gateway, or None when no key is configured."""
    if not settings.nilai_api_key:
        return None
    return AsyncOpenAI(
        api_key=settings.nilai_api_key,
        base_url=settings.nilai_base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )


def get_vision_client() -> AsyncOpenAI | None:
    """Client for the vision model, or None when no key is configured."""
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url or None,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )
