# server.py
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from broker_controller.api import brokers as brokers_router
from broker_controller.api import contract as contract_router
from broker_controller.api import metrics as metrics_router
from broker_controller.core.config import get_settings
from broker_controller.core.errors import install_exception_handlers
from broker_controller.core.exceptions import ControllerError
from broker_controller.core.log import setup_logging
from broker_controller.services.controller import (
    build_controller,
    kube_adapters,
    memory_adapters,
)
from broker_controller.services.prober import ReadinessProber

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger("broker_controller.server")


# Lifespan handler replaces @app.on_event("startup"/"shutdown")
@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()
    pending: set[asyncio.Task] = set()

    async def _requeue(key):
        try:
            result = await run_in_threadpool(app.state.controller.sync, *key)
        except ControllerError as exc:
            logger.warning("re-queued sync of %s/%s failed: %s", key[0], key[1], exc)
            return
        if result is not None and result.requeue_after:
            await asyncio.sleep(result.requeue_after)
            await _requeue(key)

    def _on_probe_change(key):
        # the prober loop runs on this event loop
        task = loop.create_task(_requeue(key))
        pending.add(task)
        task.add_done_callback(pending.discard)

    prober = ReadinessProber(
        settings.probe_interval_sec,
        settings.probe_timeout_sec,
        on_change=_on_probe_change,
    )
    adapters = memory_adapters() if settings.adapters == "memory" else kube_adapters(settings)
    app.state.controller = build_controller(settings, adapters, prober=prober)
    probe_task = asyncio.create_task(prober.run())

    try:
        yield
    finally:
        probe_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await probe_task
        for task in list(pending):
            task.cancel()


app = FastAPI(
    title="Kafka Broker Controller",
    version="1.0.0",
    lifespan=lifespan,
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

install_exception_handlers(app)

app.include_router(brokers_router.router,  prefix="/api/v1")
app.include_router(contract_router.router, prefix="/api/v1")
# metrics lives at /metrics (Prometheus convention)
app.include_router(metrics_router.router,  prefix="")


@app.get("/healthz", include_in_schema=False)
def healthz() -> dict:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000)
