import re
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from kpiscope.services.catalog import Technology, all_kpi_keys


DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def _check_known_kpi(value: str) -> str:
    # Checked against every technology's keys, not just the selected one
    if value not in all_kpi_keys():
        raise ValueError(f"unknown KPI '{value}'")
    return value


KPIKey = Annotated[str, AfterValidator(_check_known_kpi)]

# JSON numbers only: "10", 2.5 and true are rejected
PositiveLimit = Annotated[int, Field(strict=True, gt=0)]


class KPIQuery(BaseModel):
    """
    Validated request against the remote KPI data API.

    Fields are declared in the order their rules are checked, so the first
    entry of a ValidationError is always the first rule that failed:
    technology, dates, kpi list, element/site presence, limit.

    Example:
        {
            "technology": "gsm",
            "start_date": "2024-01-01",
            "end_date": "2024-01-31",
            "site": "CAI",
            "kpi": ["erlang", "dcr"],
            "limit": 500
        }
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    technology: Technology = Field(description="Which technology table to query: gsm, umts, or lmbb")
    start_date: str = Field(description="Start of date range (YYYY-MM-DD)")
    end_date: str = Field(description="End of date range (YYYY-MM-DD)")
    kpi: list[KPIKey] = Field(description="List of KPI keys to return")
    site: Optional[str] = Field(default=None, description="Substring filter on the site field")
    element: Optional[str] = Field(
        default=None,
        validate_default=True,
        description="Substring filter on the element field",
    )
    limit: Optional[PositiveLimit] = Field(default=None, description="Maximum number of rows to return")

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        if not DATE_PATTERN.fullmatch(value):
            raise ValueError("must be YYYY-MM-DD")
        return value

    @field_validator("kpi")
    @classmethod
    def validate_kpi_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("You must request at least one KPI")
        return value

    @field_validator("element")
    @classmethod
    def validate_element_or_site(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        # site is declared first so it is already in info.data here
        if not value and not info.data.get("site"):
            raise ValueError("You must provide at least one of `element` or `site`")
        return value
