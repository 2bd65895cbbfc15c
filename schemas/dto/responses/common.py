"""
Common response envelope shared by every endpoint.

ApiResponse      — {success, error, message, data} success envelope
PaginationMeta   — pagination block for list responses
HealthResponse   — GET /health

The helpers below build JSONResponses in the envelope shape so route
handlers never assemble it by hand. Error envelopes come from
AppError.to_dict() via the global exception handler.
"""

from __future__ import annotations

import math
from typing import Any, Optional, Sequence

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict


class ApiResponse(BaseModel):
    """Standard success envelope."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    error: bool = False
    message: str = "Success"
    data: Optional[Any] = None


class PaginationMeta(BaseModel):
    """Pagination metadata included in list responses."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "PaginationMeta":
        page = max(int(page), 1)
        limit = max(int(limit), 1)
        return cls(
            page=page,
            limit=limit,
            total_count=total_count,
            total_pages=math.ceil(total_count / limit),
            has_next_page=page * limit < total_count,
            has_prev_page=page > 1,
        )


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


def success_response(
    data: Any = None, message: str = "Success", status_code: int = 200
) -> JSONResponse:
    body = ApiResponse(message=message, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def created_response(
    data: Any = None, message: str = "Resource created successfully"
) -> JSONResponse:
    return success_response(data, message, status_code=201)


def paginated_response(
    items: Sequence[Any],
    page: int,
    limit: int,
    total_count: int,
    message: str = "Data retrieved successfully",
) -> JSONResponse:
    body = jsonable_encoder(ApiResponse(message=message, data=list(items)))
    body["pagination"] = PaginationMeta.build(page, limit, total_count).model_dump()
    return JSONResponse(status_code=200, content=body)
