"""
Humanity score lookup against the Passport scorer API.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from config import settings
from services.errors import UpstreamAnalysisFailure, UpstreamNotConfigured

logger = logging.getLogger(__name__)


def _score_url(address: str) -> str:
    base = settings.passport_base_url.rstrip("/")
    return f"{base}/registry/score/{settings.passport_scorer_id}/{address}"


def parse_score(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


async def verify_score(address: str) -> dict[str, Any]:
    """
    Returns {verified, score, isPassing, rawData}; score is the scorer's value as a string.
    """
    if not settings.passport_api_key or not settings.passport_scorer_id:
        raise UpstreamNotConfigured("Passport API credentials not configured")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(
                _score_url(address),
                headers={"X-API-Key": settings.passport_api_key, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise UpstreamAnalysisFailure(f"Passport API unreachable: {e}") from e

    if resp.status_code >= 400:
        logger.warning("Passport API returned %s for %s", resp.status_code, address)
        raise UpstreamAnalysisFailure(f"Passport API error: {resp.status_code} {resp.text}")

    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamAnalysisFailure("Passport API returned invalid JSON") from e

    score = data.get("score", 0) if isinstance(data, dict) else 0
    return {
        "verified": True,
        "score": str(score),
        "isPassing": parse_score(score) >= settings.passport_passing_score,
        "rawData": data if isinstance(data, dict) else {},
    }
