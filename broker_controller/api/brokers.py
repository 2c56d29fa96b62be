"""Manual reconcile / finalize of a single broker."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from fastapi.concurrency import run_in_threadpool

from broker_controller.api.dependencies import get_controller, require_jwt
from broker_controller.domain.models.broker import Broker
from broker_controller.domain.services.reconciler import ReconcileResult
from broker_controller.services.controller import BrokerController

router = APIRouter(prefix="/brokers", tags=["brokers"])

_NAME = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


@router.get("/{namespace}/{name}", response_model=Broker)
def get_broker(
    namespace: str = Path(..., pattern=_NAME),
    name: str = Path(..., pattern=_NAME),
    ctl: BrokerController = Depends(get_controller),
) -> Broker:
    """Return the broker with its last written status."""
    return ctl.brokers.get(namespace, name)


@router.post("/{namespace}/{name}/reconcile", response_model=ReconcileResult)
async def reconcile_broker(
    namespace: str = Path(..., pattern=_NAME),
    name: str = Path(..., pattern=_NAME),
    ctl: BrokerController = Depends(get_controller),
    _claims: dict = Depends(require_jwt),
) -> ReconcileResult:
    """Run one reconcile pass; failures come back as problem documents."""
    return await run_in_threadpool(ctl.reconcile, namespace, name)


@router.post("/{namespace}/{name}/finalize", response_model=ReconcileResult)
async def finalize_broker(
    namespace: str = Path(..., pattern=_NAME),
    name: str = Path(..., pattern=_NAME),
    ctl: BrokerController = Depends(get_controller),
    _claims: dict = Depends(require_jwt),
) -> ReconcileResult:
    """Run one finalize pass; `requeueAfter` is set while the address is still served."""
    return await run_in_threadpool(ctl.finalize, namespace, name)
