from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from broker_controller.api.dependencies import get_controller
from broker_controller.domain.models.probe import ProbeStatus
from broker_controller.services.controller import BrokerController

router = APIRouter(tags=["contract"])


class ProbeEntry(BaseModel):
    namespace: str
    name: str
    status: ProbeStatus


@router.get("/contract")
async def get_contract(ctl: BrokerController = Depends(get_controller)) -> dict:
    """The shared data-plane contract, in its wire shape."""
    contract = await run_in_threadpool(ctl.contracts.load)
    return contract.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("/probes", response_model=list[ProbeEntry])
def list_probes(ctl: BrokerController = Depends(get_controller)) -> list[ProbeEntry]:
    """Last observed reachability per broker address."""
    return [
        ProbeEntry(namespace=ns, name=name, status=status)
        for (ns, name), status in sorted(ctl.prober.snapshot().items())
    ]
