from fastapi import APIRouter, Request, Response
from prometheus_client import CollectorRegistry, Gauge, generate_latest, CONTENT_TYPE_LATEST

from broker_controller.core.exceptions import ControllerError
from broker_controller.domain.models.probe import ProbeStatus
from broker_controller.services.controller import BrokerController

router = APIRouter()


@router.get("/metrics")
def metrics(request: Request):
    ctl: BrokerController = getattr(request.app.state, "controller", None)
    if not ctl:
        return Response(content=b"", media_type=CONTENT_TYPE_LATEST)

    reg = CollectorRegistry()
    g_gen = Gauge("broker_contract_generation", "Generation of the data-plane contract", registry=reg)
    g_res = Gauge("broker_contract_resources", "Broker entries in the data-plane contract", registry=reg)
    g_probe = Gauge("broker_probe_ready", "1 when the broker address answers, 0 otherwise",
                    ["namespace", "name", "status"], registry=reg)

    try:
        contract = ctl.contracts.load()
        g_gen.set(contract.generation)
        g_res.set(len(contract.resources))
    except ControllerError:
        # contract unreadable: expose probe gauges only
        pass

    for (namespace, name), status in ctl.prober.snapshot().items():
        g_probe.labels(namespace=namespace, name=name, status=status.value).set(
            1 if status == ProbeStatus.READY else 0
        )

    return Response(generate_latest(reg), media_type=CONTENT_TYPE_LATEST)
