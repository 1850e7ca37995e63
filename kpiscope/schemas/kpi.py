from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class KPIStatsSummary(BaseModel):
    """Trend, extrema and dispersion of one KPI time series."""
    model_config = ConfigDict(frozen=True)

    kpi: str
    count: int
    current: float
    change: float
    change_pct: float
    direction: Literal["up", "down"]
    average: float
    minimum: float
    minimum_time: Optional[str] = None
    maximum: float
    maximum_time: Optional[str] = None
    std_dev: float
    range_label: str


class StatCard(BaseModel):
    """Single footer card under a KPI chart."""
    label: str
    value: str
    sub: Optional[str] = None
    direction: Optional[Literal["up", "down"]] = None


class KPISummaryRequest(BaseModel):
    """Raw records to summarize for one KPI key."""
    kpi: str
    records: list[dict[str, Any]] = Field(default_factory=list)


class KPISummaryResponse(BaseModel):
    """Summary, display cards and time-sorted series for one KPI key."""
    kpi: str
    display_name: str
    summary: KPIStatsSummary
    cards: list[StatCard]
    series: list[dict[str, Any]]


class KPIInfo(BaseModel):
    """Catalog entry for one KPI key."""
    key: str
    display_name: Optional[str] = None
    synonyms: list[str] = Field(default_factory=list)


class TechnologyKPIsResponse(BaseModel):
    """KPIs queryable for one technology."""
    technology: str
    kpis: list[KPIInfo]
