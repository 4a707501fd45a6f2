"""
Data models for datasets, charts and query results.
Datasets and results are frozen once built; the store hands out the same
object to every reader.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ColumnType = Literal["number", "date", "text", "unknown"]
QualityTier = Literal["excellent", "good", "fair", "poor"]
ChartType = Literal["bar", "line", "pie", "scatter"]

MAX_SAMPLE_ROWS = 20


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class QualityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: QualityTier
    completeness: float = Field(..., ge=0, le=100)
    issues: List[str] = Field(default_factory=list)


class Dataset(BaseModel):
    """One uploaded file after cleaning. Rows keep source order."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    size: int = 0
    rows: List[Dict[str, Any]]
    columns: List[str]
    column_types: Dict[str, ColumnType]
    quality: QualityReport
    uploaded_at: datetime = Field(default_factory=_now)

    def summary(self) -> Dict[str, Any]:
        return {
            "rows": len(self.rows),
            "columns": len(self.columns),
            "dataQuality": self.quality.tier,
            "issues": list(self.quality.issues),
            "completeness": self.quality.completeness,
        }


class ChartSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ChartType
    title: str
    labels: List[str] = Field(default_factory=list, max_length=10)
    series: List[float] = Field(default_factory=list, max_length=10)
    colors: List[str] = Field(default_factory=list)

    def to_chart_data(self) -> Dict[str, Any]:
        """Chart.js-style payload used by the web client."""
        dataset: Dict[str, Any] = {
            "label": self.title,
            "data": list(self.series),
            "backgroundColor": list(self.colors),
        }
        if self.type == "line":
            dataset["borderColor"] = self.colors[0] if self.colors else None
            dataset["tension"] = 0.4
        return {"labels": list(self.labels), "datasets": [dataset]}


class QueryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    query: str
    answer: str
    chart_type: ChartType
    chart: Optional[ChartSpec] = None
    sample_rows: List[Dict[str, Any]] = Field(default_factory=list, max_length=MAX_SAMPLE_ROWS)
    ai_generated: bool = False
    timestamp: datetime = Field(default_factory=_now)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "query": self.query,
            "answer": self.answer,
            "chartType": self.chart_type,
            "chartData": self.chart.to_chart_data() if self.chart else None,
            "sampleRows": self.sample_rows,
            "timestamp": self.timestamp.isoformat(),
        }


class QueryRequest(BaseModel):
    """Both fields are optional at the schema level so a missing one is a 400, not a 422."""

    fileId: Optional[str] = None
    query: Optional[str] = None
