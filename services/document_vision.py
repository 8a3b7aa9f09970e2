"""
Extract structured financial details from a document image with a vision model.

The model is asked for a JSON object but answers in free text: sometimes fenced in
markdown, sometimes with thousands separators inside numbers, sometimes with
keyDetails nested by kind instead of a flat list. normalize_vision_response()
turns any of those into a DocumentAnalysis and always keeps the verbatim text.

Parsing stages (each exposed for testing):
  1. strip_code_fence
  2. repair_numeric_separators   (outside string literals)
  3. collapse_whitespace
  4. json.loads
  5. flatten_key_details
On failure: heuristic category / amount / date extraction from the raw text.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import openai

from config import settings
from schemas.analysis import DocumentAnalysis
from services.errors import UpstreamAnalysisFailure
from services.llm import get_vision_client

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_TYPE = "Financial Document"
DEFAULT_CONFIDENCE = 0.7
DEFAULT_KEY_DETAIL = "Document uploaded successfully"
HEURISTIC_KEY_DETAIL = "Financial document processed"

CATEGORIES = ("Bank Statement", "Mobile Money", "Utilities", "Income Proof", "Receipt", "Invoice", "Other")

# Returned next to the error when the upstream call itself fails
UPLOAD_FALLBACK = {
    "category": "Other",
    "documentType": DEFAULT_DOCUMENT_TYPE,
    "keyDetails": [DEFAULT_KEY_DETAIL, "Manual review recommended"],
    "summary": "Document uploaded but automatic analysis failed",
    "confidence": 0.5,
}

EXTRACTION_PROMPT = """Extract ALL possible financial details from this document image. Return a JSON object with:
- category: One of "Bank Statement", "Mobile Money", "Utilities", "Income Proof", "Receipt", "Invoice", "Other"
- documentType: Specific type (e.g., "Monthly Bank Statement", "Electricity Bill", "Pay Stub")
- keyDetails: Array containing EVERY detail you can extract including:
  * All amounts (balances, transactions, fees, charges)
  * All dates (statement dates, transaction dates, due dates)
  * Account numbers (partial - first 4 digits only for privacy)
  * Transaction descriptions
  * Merchant names
  * Reference numbers
  * Account holder information (names, addresses if visible)
  * Bank/institution names
  * Interest rates, fees, charges
  * Available balances, credit limits
  * Any other financial or identifying information
- summary: Brief description of document type
- confidence: Number between 0-1 indicating confidence in analysis

Extract EVERYTHING you can see - be comprehensive and detailed.
PRIVACY: mask every account number except its first 4 digits.

Filename: {filename}"""

# (nested key, label) in emission order
NESTED_DETAIL_KEYS: tuple[tuple[str, str], ...] = (
    ("amounts", "Amount"),
    ("dates", "Date"),
    ("accountNumbers", "Account"),
    ("transactionDescriptions", "Transaction"),
    ("merchantNames", "Merchant"),
    ("referenceNumbers", "Reference"),
    ("accountHolderInformation", ""),
    ("bankNames", "Bank"),
    ("availableBalances", "Available Balance"),
    ("feesAndCharges", "Fee/Charge"),
)

_FENCE_OPEN_JSON = re.compile(r"^```json\s*")
_FENCE_OPEN = re.compile(r"^```\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")
# A JSON string literal, or a comma between two digit runs outside one
_NUMERIC_SEPARATOR = re.compile(r'"(?:\\.|[^"\\])*"|(-?\d+),(\d+)')
_WHITESPACE = re.compile(r"\s+")
_AMOUNT = re.compile(r"\$?\d[\d,]*(?:\.\d+)?")
_DATE = re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}")


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN_JSON.sub("", cleaned))
    elif cleaned.startswith("```"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned))
    return cleaned


def repair_numeric_separators(text: str) -> str:
    """
    Drop a comma between two digit runs: "-1,088.20" -> "-1088.20".
    String literals are copied through untouched.
    """
    def _merge(match: re.Match) -> str:
        if match.group(1) is None:
            return match.group(0)
        return match.group(1) + match.group(2)

    return _NUMERIC_SEPARATOR.sub(_merge, text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float, str)):
        return str(value)
    return json.dumps(value)


def flatten_key_details(key_details: Any) -> list[str]:
    """
    Normalize keyDetails to a flat list of strings.
    A list is returned as-is (non-string items stringified); a dict of recognized
    nested keys becomes "Label N: value" lines; anything else yields [].
    """
    if isinstance(key_details, list):
        return [item if isinstance(item, str) else _format_value(item) for item in key_details]
    if not isinstance(key_details, dict):
        return []

    flattened: list[str] = []
    for key, label in NESTED_DETAIL_KEYS:
        value = key_details.get(key)
        if key == "accountHolderInformation":
            if isinstance(value, dict):
                if value.get("name"):
                    flattened.append(f"Account Holder: {_format_value(value['name'])}")
                if value.get("address"):
                    flattened.append(f"Address: {_format_value(value['address'])}")
            continue
        if not isinstance(value, list):
            continue
        for idx, entry in enumerate(value, start=1):
            flattened.append(f"{label} {idx}: {_format_value(entry)}")
    return flattened


def extract_category(text: str, filename: str) -> str:
    lower_text = text.lower()
    lower_name = filename.lower()
    if "bank" in lower_text or "statement" in lower_text or "bank" in lower_name:
        return "Bank Statement"
    if "mobile money" in lower_text or "m-pesa" in lower_text or "mpesa" in lower_name:
        return "Mobile Money"
    if "utility" in lower_text or "electric" in lower_text or "water" in lower_text:
        return "Utilities"
    if "pay" in lower_text or "salary" in lower_text or "income" in lower_text:
        return "Income Proof"
    return "Other"


def categorize_from_filename(filename: str) -> str:
    lower = filename.lower()
    if "bank" in lower or "statement" in lower:
        return "Bank Statement"
    if "mpesa" in lower or "mobile" in lower:
        return "Mobile Money"
    if "bill" in lower or "utility" in lower:
        return "Utilities"
    if "pay" in lower or "salary" in lower:
        return "Income Proof"
    return "Other"


def extract_key_details(text: str) -> list[str]:
    """At most one amount line and one date line from free text."""
    details: list[str] = []
    amount = _AMOUNT.search(text)
    if amount:
        details.append(f"Amount found: {amount.group(0)}")
    date = _DATE.search(text)
    if date:
        details.append(f"Date: {date.group(0)}")
    return details or [HEURISTIC_KEY_DETAIL]


def parse_vision_json(text: str) -> Optional[dict[str, Any]]:
    """Stages 1-4. Returns None when the text cannot be read as a JSON object."""
    cleaned = collapse_whitespace(repair_numeric_separators(strip_code_fence(text)))
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _heuristic_analysis(text: str, filename: str) -> dict[str, Any]:
    category = extract_category(text, filename)
    return {
        "category": category,
        "documentType": f"{category} Document",
        "keyDetails": extract_key_details(text),
        "summary": f"Analysis of {filename}",
        "confidence": DEFAULT_CONFIDENCE,
    }


def _clamp_confidence(value: Any) -> float:
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_CONFIDENCE
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value or value != value:
        return DEFAULT_CONFIDENCE
    return min(max(float(value), 0.0), 1.0)


def normalize_vision_response(text: str, filename: str) -> DocumentAnalysis:
    parsed = parse_vision_json(text)
    if parsed is None:
        logger.warning("Vision output for %s is not JSON; using text heuristics", filename)
        parsed = _heuristic_analysis(text, filename)

    key_details = flatten_key_details(parsed.get("keyDetails"))
    category = parsed.get("category")
    document_type = parsed.get("documentType")
    summary = parsed.get("summary")
    return DocumentAnalysis(
        category=category if isinstance(category, str) and category.strip() else categorize_from_filename(filename),
        document_type=document_type if isinstance(document_type, str) and document_type.strip() else DEFAULT_DOCUMENT_TYPE,
        key_details=key_details or [DEFAULT_KEY_DETAIL],
        summary=summary if isinstance(summary, str) and summary.strip() else f"Analysis of {filename}",
        confidence=_clamp_confidence(parsed.get("confidence")),
        raw_output=text,
    )


async def analyze_document_image(image_b64: str, filename: str) -> DocumentAnalysis:
    """
    Send one image to the vision model and normalize the answer.
    Raises UpstreamAnalysisFailure when the model cannot be reached or says nothing;
    the uploader is expected to retry.
    """
    client = get_vision_client()
    if client is None:
        raise UpstreamAnalysisFailure("OPENAI_API_KEY is not configured")
    logger.info("Analyzing %s (%d base64 chars)", filename, len(image_b64))
    try:
        resp = await client.chat.completions.create(
            model=settings.vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": EXTRACTION_PROMPT.format(filename=filename)},
                        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"}},
                    ],
                }
            ],
            max_tokens=settings.vision_max_tokens,
        )
    except openai.OpenAIError as e:
        raise UpstreamAnalysisFailure(f"Vision analysis failed: {e}") from e
    finally:
        await client.close()

    text = resp.choices[0].message.content if resp and resp.choices else None
    if not text:
        raise UpstreamAnalysisFailure("No analysis received from vision model")
    logger.info("Vision analysis for %s: %d chars, finish_reason=%s", filename, len(text), resp.choices[0].finish_reason)
    return normalize_vision_response(text, filename)
