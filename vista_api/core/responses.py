from __future__ import annotations

import math
from typing import Any, Dict, Optional


def build_pagination(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    pagination: Optional[Dict[str, int]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    body.update(extra)
    return body


def error_body(
    message: str,
    *,
    error: Optional[str] = None,
    errors: Optional[list] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    if errors is not None:
        body["errors"] = errors
    return body
