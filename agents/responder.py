"""
Response agent: narrative answer for a query.
Uses Groq for a natural-language analysis when GROQ_API_KEY is set; any upstream
failure or timeout falls back to a deterministic canned paragraph, so the query
itself never fails because of the AI service.
"""
import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import groq
from dotenv import load_dotenv

from db.models import Dataset
from utils.errors import UpstreamAIError

load_dotenv()

logger = logging.getLogger(__name__)

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
DEFAULT_MODEL = "llama-3.3-70b-versatile"
GROQ_MODEL = os.getenv("GROQ_MODEL", DEFAULT_MODEL)
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
# 0 keeps the single-attempt behaviour; the Groq client backs off between retries
AI_MAX_RETRIES = int(os.getenv("AI_MAX_RETRIES", "0"))

PROMPT_SAMPLE_ROWS = 5

SYSTEM_PROMPT = (
    "You are a data analyst AI. Answer questions about a user's spreadsheet using only "
    "the dataset information provided. Keep the response conversational but informative. "
    "Respond in plain text with no code and no markdown."
)

# (required keyword groups, template); every group must have a keyword in the query
FALLBACK_TEMPLATES: List[Tuple[List[List[str]], str]] = [
    (
        [["sales"], ["region"]],
        "Based on the analysis of {rows} records, regional sales performance varies noticeably. "
        "Some regions perform clearly stronger than others, and the weaker areas point to "
        "opportunities for optimization.",
    ),
    (
        [["profit", "margin"]],
        "Profit analysis across {rows} records shows clear variation in profitability between "
        "segments. Several factors appear to drive the margins, and some of them could be optimized.",
    ),
    (
        [["trend", "time"]],
        "Time-based analysis of the {rows} records shows how the figures evolve over the covered "
        "period. The trends point to both growth opportunities and areas that need attention, "
        "and there may be seasonal or cyclical patterns worth a closer look.",
    ),
]

GENERIC_TEMPLATE = (
    "Analysis of your {rows} records reveals several patterns and relationships that can inform "
    "business decisions. Key metrics show both strengths and opportunities for improvement "
    "across different dimensions of the dataset."
)

_client: Optional[Any] = None


def ai_enabled() -> bool:
    return bool(GROQ_API_KEY)


def _get_client():
    """Lazy AsyncGroq client."""
    global _client
    if _client is None:
        _client = groq.AsyncGroq(
            api_key=GROQ_API_KEY,
            timeout=AI_TIMEOUT_SECONDS,
            max_retries=AI_MAX_RETRIES,
        )
    return _client


def fallback_answer(query: str, row_count: int) -> str:
    """Deterministic canned paragraph chosen by keyword co-occurrence."""
    q = (query or "").lower()
    for groups, template in FALLBACK_TEMPLATES:
        if all(any(k in q for k in group) for group in groups):
            return template.format(rows=row_count)
    return GENERIC_TEMPLATE.format(rows=row_count)


def build_prompt(dataset: Dataset, query: str) -> str:
    sample = dataset.rows[:PROMPT_SAMPLE_ROWS]
    return (
        "Dataset Information:\n"
        f"- Columns: {', '.join(dataset.columns)}\n"
        f"- Column Types: {json.dumps(dataset.column_types)}\n"
        f"- Total Rows: {len(dataset.rows)}\n"
        f"- Data Quality: {dataset.quality.tier}\n\n"
        f"Sample Data (first {len(sample)} rows):\n"
        f"{json.dumps(sample, indent=2, default=str)}\n\n"
        f'User Question: "{query}"\n\n'
        "Please provide:\n"
        "1. A detailed analysis answering the user's question\n"
        "2. Key insights from the data\n"
        "3. Specific numbers and trends where relevant\n"
        "4. Actionable recommendations if applicable\n"
    )


async def _ai_answer(dataset: Dataset, query: str) -> str:
    """One chat-completions call. Raises UpstreamAIError on any failure or an empty reply."""
    try:
        response = await _get_client().chat.completions.create(
            model=GROQ_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(dataset, query)},
            ],
            temperature=0.2,
            max_tokens=1024,
        )
        content = (response.choices[0].message.content or "").strip()
    except Exception as e:
        raise UpstreamAIError(f"AI request failed: {e}") from e
    if not content:
        raise UpstreamAIError("AI returned an empty answer")
    return content


async def generate_answer(dataset: Dataset, query: str) -> Tuple[str, bool]:
    """
    Narrative answer for the query. Returns (answer, ai_generated).
    Timeout and upstream errors degrade to fallback_answer(); cancellation propagates.
    """
    row_count = len(dataset.rows)
    if not ai_enabled():
        return fallback_answer(query, row_count), False
    try:
        answer = await asyncio.wait_for(_ai_answer(dataset, query), timeout=AI_TIMEOUT_SECONDS)
        return answer, True
    except asyncio.TimeoutError:
        logger.warning("ai_timeout: dataset=%s after %ss, using fallback", dataset.id, AI_TIMEOUT_SECONDS)
    except UpstreamAIError as e:
        logger.warning("ai_error: dataset=%s %s, using fallback", dataset.id, e.message)
    return fallback_answer(query, row_count), False


async def list_models() -> List[Dict[str, Any]]:
    """Provider model catalog. Raises UpstreamAIError when unconfigured or failing."""
    if not ai_enabled():
        raise UpstreamAIError("AI provider is not configured")
    try:
        page = await _get_client().models.list()
    except Exception as e:
        logger.error("models_error: %s", e)
        raise UpstreamAIError(f"Failed to list models: {e}") from e
    return [
        {
            "name": m.id,
            "ownedBy": getattr(m, "owned_by", None),
            "contextWindow": getattr(m, "context_window", None),
            "active": getattr(m, "active", None),
        }
        for m in page.data
    ]
