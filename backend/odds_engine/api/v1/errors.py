from fastapi import HTTPException
from pydantic import ValidationError

from odds_engine.errors import (
    ConcurrencyConflict,
    EventNotFound,
    InvalidWager,
    OddsEngineError,
    PolicyNotFound,
    QuoteClosed,
    QuoteNotFound,
)

_STATUS_BY_ERROR: dict[type[OddsEngineError], int] = {
    EventNotFound: 404,
    QuoteNotFound: 404,
    PolicyNotFound: 404,
    QuoteClosed: 409,
    ConcurrencyConflict: 409,
    InvalidWager: 422,
}


def to_http(exc: OddsEngineError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_ERROR.get(type(exc), 500), detail=str(exc))


def validation_to_http(exc: ValidationError) -> HTTPException:
    """422 for a model that only fails validation after merging stored and submitted fields."""
    detail = [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()]
    return HTTPException(status_code=422, detail=detail)
