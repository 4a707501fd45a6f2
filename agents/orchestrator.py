"""
Orchestrator: fixed pipelines for uploads and queries.

Upload:  bytes -> excel_parser -> normalizer -> {schema_inference, quality} -> Dataset -> store
Query:   text + Dataset -> query_router -> analyst (chart) -> responder (narrative) -> QueryResult

The response assembler samples the first rows of the dataset regardless of the
question text.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from agents.analyst import build_chart
from agents.responder import generate_answer
from db.models import MAX_SAMPLE_ROWS, ChartSpec, Dataset, QualityReport, QueryResult
from db.store import DatasetStore, get_store
from utils.errors import NotFoundError, ValidationError
from utils.excel_parser import check_extension, parse_upload
from utils.normalizer import normalize
from utils.quality import analyze_quality
from utils.query_router import route_query
from utils.schema_inference import infer_column_types

load_dotenv()

logger = logging.getLogger(__name__)

MAX_UPLOAD_MB = float(os.getenv("MAX_UPLOAD_MB", "10"))
MAX_UPLOAD_BYTES = int(MAX_UPLOAD_MB * 1024 * 1024)


def build_dataset(records: List[Dict[str, Any]], name: str, size: int = 0) -> Dataset:
    """Clean parsed records and profile them into an immutable Dataset."""
    rows, columns = normalize(records)
    column_types = infer_column_types(rows, columns)
    quality = analyze_quality(rows)
    dataset = Dataset(
        name=name,
        size=size,
        rows=rows,
        columns=columns,
        column_types=column_types,
        quality=QualityReport(
            tier=quality["tier"],
            completeness=quality["completeness"],
            issues=quality["issues"],
        ),
    )
    logger.info(
        "dataset_built: id=%s name=%s rows=%s columns=%s quality=%s completeness=%s",
        dataset.id, name, len(rows), len(columns), quality["tier"], quality["completeness"],
    )
    return dataset


def ingest(content: bytes, filename: str, store: Optional[DatasetStore] = None) -> Dataset:
    """
    Validate, parse and profile one upload, then store it.
    Raises ValidationError (type/size), ParseError (unreadable or empty file).
    """
    if store is None:
        store = get_store()
    if not filename:
        raise ValidationError("No file uploaded")
    check_extension(filename)
    size = len(content or b"")
    if size > MAX_UPLOAD_BYTES:
        raise ValidationError(f"File too large (max {MAX_UPLOAD_MB:g} MB)")
    records = parse_upload(content, filename)
    dataset = build_dataset(records, filename, size)
    store.put(dataset)
    return dataset


def get_dataset(file_id: str, store: Optional[DatasetStore] = None) -> Dataset:
    if store is None:
        store = get_store()
    dataset = store.get(file_id)
    if dataset is None:
        raise NotFoundError("File not found")
    return dataset


async def answer_query(dataset: Dataset, query: str) -> QueryResult:
    """Route, aggregate, narrate and assemble the result for one question."""
    route = route_query(query, dataset.rows, dataset.columns)
    chart = build_chart(dataset.rows, route)
    answer, ai_generated = await generate_answer(dataset, query)
    return QueryResult(
        query=query,
        answer=answer,
        chart_type=route["chart_type"],
        chart=ChartSpec(**chart) if chart else None,
        sample_rows=dataset.rows[:MAX_SAMPLE_ROWS],
        ai_generated=ai_generated,
    )


async def run_query(
    file_id: Optional[str],
    query: Optional[str],
    store: Optional[DatasetStore] = None,
) -> QueryResult:
    """Entry point for the query endpoint: validates input, resolves the dataset, answers."""
    if not file_id or not query:
        raise ValidationError("File ID and query are required")
    dataset = get_dataset(file_id, store)
    logger.info("query: file_id=%s query=%r", file_id, query)
    return await answer_query(dataset, query)
