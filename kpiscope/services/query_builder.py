"""
Turns a free-form candidate query into a validated KPIQuery.
"""
from typing import Any, Mapping

from pydantic import ValidationError

from kpiscope.core.exceptions import QueryValidationError
from kpiscope.core.logging import get_logger
from kpiscope.schemas.query import KPIQuery


logger = get_logger(__name__)


def _first_error(exc: ValidationError) -> QueryValidationError:
    error = exc.errors()[0]
    field = ".".join(str(x) for x in error["loc"]) or "query"

    # Surface our own validator messages without pydantic's "Value error, " prefix
    ctx = error.get("ctx") or {}
    if error["type"] == "value_error" and "error" in ctx:
        message = str(ctx["error"])
    else:
        message = error["msg"]

    return QueryValidationError(message, field)


def build_query(candidate: Mapping[str, Any] | KPIQuery) -> KPIQuery:
    """
    Validate a candidate query against the catalog and structural rules.

    Args:
        candidate: Mapping with technology, start_date, end_date, kpi and
            optional element, site, limit. Unknown keys are ignored.

    Returns:
        Frozen KPIQuery with `kpi` in the order given

    Raises:
        QueryValidationError: For the first rule that fails
    """
    if isinstance(candidate, KPIQuery):
        return candidate

    try:
        query = KPIQuery.model_validate(candidate)
    except ValidationError as e:
        error = _first_error(e)
        logger.info(
            "query_builder.rejected",
            field=error.field,
            reason=error.message,
        )
        raise error from e

    return query
