"""
AI Data Analyst: FastAPI app.
Upload a spreadsheet, inspect its inferred schema and quality, ask questions.
Routes are served at the root and, for the web client, under /api.
"""
import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from agents.orchestrator import get_dataset, ingest, run_query
from agents.responder import ai_enabled, list_models
from db.models import Dataset, QueryRequest
from db.store import DatasetStore, get_store
from utils.errors import AnalystError, NotFoundError, UpstreamAIError, ValidationError

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL, format="%(name)s | %(levelname)s | %(message)s")
logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PREVIEW_ROWS = 100
# How often an in-flight query checks whether the client is still connected
DISCONNECT_POLL_SECONDS = 0.5

app = FastAPI(title="AI Data Analyst API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

router = APIRouter()


def get_dataset_store() -> DatasetStore:
    return get_store()


@app.exception_handler(AnalystError)
async def analyst_error_handler(request: Request, exc: AnalystError):
    if exc.status_code >= 500:
        logger.error("request_failed: %s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("invalid_request: %s %s %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("internal_error: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _file_info(dataset: Dataset) -> Dict[str, Any]:
    return {
        "id": dataset.id,
        "name": dataset.name,
        "size": dataset.size,
        "uploadedAt": dataset.uploaded_at.isoformat(),
        "processed": True,
        "columns": list(dataset.columns),
        "summary": dataset.summary(),
    }


async def _cancel_on_disconnect(request: Request, coro) -> Optional[Any]:
    """Run coro as a task; cancel it if the client goes away. Returns None when cancelled."""
    task = asyncio.ensure_future(coro)
    while True:
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            return task.result()
        if await request.is_disconnected():
            task.cancel()
            logger.info("query_cancelled: client disconnected from %s", request.url.path)
            return None


@app.get("/")
def root():
    return {"status": "ok", "message": "AI Data Analyst API"}


@router.post("/upload")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    store: DatasetStore = Depends(get_dataset_store),
):
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    content = await file.read()
    dataset = await run_in_threadpool(ingest, content, file.filename, store)
    return _file_info(dataset)


@router.get("/files/{file_id}")
def get_file(file_id: str, store: DatasetStore = Depends(get_dataset_store)):
    dataset = get_dataset(file_id, store)
    info = _file_info(dataset)
    info["data"] = dataset.rows[:PREVIEW_ROWS]
    info["columnTypes"] = dict(dataset.column_types)
    return info


@router.delete("/files/{file_id}", status_code=204)
def delete_file(file_id: str, store: DatasetStore = Depends(get_dataset_store)):
    if not store.delete(file_id):
        raise NotFoundError("File not found")
    logger.info("dataset_deleted: id=%s", file_id)
    return Response(status_code=204)


@router.post("/query")
async def query_data(
    request: Request,
    payload: Optional[QueryRequest] = None,
    store: DatasetStore = Depends(get_dataset_store),
):
    payload = payload or QueryRequest()
    result = await _cancel_on_disconnect(request, run_query(payload.fileId, payload.query, store))
    if result is None:
        # 499: client closed request
        return Response(status_code=499)
    return result.to_response()


@router.get("/health")
def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "aiEnabled": ai_enabled(),
    }


@router.get("/models")
async def models():
    try:
        catalog = await list_models()
    except UpstreamAIError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": e.message})
    return {"success": True, "models": catalog}


app.include_router(router)
app.include_router(router, prefix="/api", include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 8000)))
