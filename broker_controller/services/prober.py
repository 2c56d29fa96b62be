# broker_controller/services/prober.py
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

import httpx

from broker_controller.domain.models.probe import Addressable, ProbeStatus

logger = logging.getLogger(__name__)

ResourceKey = Tuple[str, str]


class ReadinessProber:
    """
    Last-known reachability of broker addresses, keyed by (namespace, name).

    `probe()` never blocks: it registers the address and returns whatever the
    background loop observed last (Unknown before the first observation).
    `run()` is that loop; on every status change it calls `on_change(key)` so
    the owner can re-queue the broker instead of polling.
    """

    def __init__(
        self,
        interval_sec: float = 1.0,
        timeout_sec: float = 2.0,
        on_change: Optional[Callable[[ResourceKey], None]] = None,
    ) -> None:
        self._interval = interval_sec
        self._timeout = timeout_sec
        self._on_change = on_change
        self._targets: Dict[ResourceKey, str] = {}
        self._status: Dict[ResourceKey, ProbeStatus] = {}
        self._lock = threading.RLock()

    # -------- read side (reconciler) --------

    def probe(self, addressable: Addressable, desired: ProbeStatus) -> ProbeStatus:
        key = tuple(addressable.resource_key)
        with self._lock:
            if self._targets.get(key) != addressable.address:
                self._targets[key] = addressable.address
                self._status.pop(key, None)
            observed = self._status.get(key, ProbeStatus.UNKNOWN)
        if observed != desired:
            logger.debug("probe %s/%s: want %s, observed %s", key[0], key[1], desired.value, observed.value)
        return observed

    def forget(self, key: ResourceKey) -> None:
        with self._lock:
            self._targets.pop(key, None)
            self._status.pop(key, None)

    def snapshot(self) -> Dict[ResourceKey, ProbeStatus]:
        with self._lock:
            return {k: self._status.get(k, ProbeStatus.UNKNOWN) for k in self._targets}

    # -------- write side (background loop) --------

    def observe(self, key: ResourceKey, status: ProbeStatus) -> None:
        """Record an observation; fire `on_change` when the status moved."""
        with self._lock:
            if key not in self._targets:
                return
            previous = self._status.get(key, ProbeStatus.UNKNOWN)
            self._status[key] = status
        if previous != status:
            logger.info("probe %s/%s: %s -> %s", key[0], key[1], previous.value, status.value)
            if self._on_change is not None:
                self._on_change(key)

    async def check(self, client: httpx.AsyncClient, address: str) -> ProbeStatus:
        try:
            resp = await client.get(address)
        except httpx.HTTPError as exc:
            logger.debug("probe %s failed: %s", address, exc)
            return ProbeStatus.NOT_READY
        return ProbeStatus.READY if resp.is_success else ProbeStatus.NOT_READY

    async def probe_all(self, client: httpx.AsyncClient) -> None:
        with self._lock:
            targets = list(self._targets.items())
        if not targets:
            return
        results = await asyncio.gather(*(self.check(client, addr) for _, addr in targets))
        for (key, _), status in zip(targets, results):
            self.observe(key, status)

    async def run(self) -> None:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            while True:
                await self.probe_all(client)
                await asyncio.sleep(self._interval)
