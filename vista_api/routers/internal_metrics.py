from __future__ import annotations

from fastapi import APIRouter, Depends

from vista_api.core.metrics import request_metrics
from vista_api.deps import require_permissions
from vista_api.models.user import User

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def endpoint_metrics(_user: User = Depends(require_permissions(["metrics.read"]))):
    return {"endpoints": request_metrics.snapshot()}


@router.get("/account-types")
def account_type_metrics(_user: User = Depends(require_permissions(["metrics.read"]))):
    return {"account_types": request_metrics.snapshot_per_account_type()}
