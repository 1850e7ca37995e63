"""
Pydantic schemas for KPI queries and summaries.
"""

from .query import KPIQuery
from .kpi import (
    KPIInfo,
    KPIStatsSummary,
    KPISummaryRequest,
    KPISummaryResponse,
    StatCard,
    TechnologyKPIsResponse,
)

__all__ = [
    "KPIQuery",
    "KPIInfo",
    "KPIStatsSummary",
    "KPISummaryRequest",
    "KPISummaryResponse",
    "StatCard",
    "TechnologyKPIsResponse",
]
