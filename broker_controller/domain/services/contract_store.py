"""The shared data-plane contract: one document for all brokers.

Mutations are read-modify-write under optimistic concurrency. The
generation counter moves only when a resource entry really changes, and the
caller bumps it once per pass, after all entry mutations and right before
``persist``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from broker_controller.core.exceptions import ContractError, NotFoundError
from broker_controller.domain.models.contract import Contract, Resource
from broker_controller.infra.ports import ContractRepository

logger = logging.getLogger(__name__)


@dataclass
class StoredContract:
    contract: Contract
    version: str


class ContractStore:
    def __init__(self, repo: ContractRepository) -> None:
        self._repo = repo

    def get_or_create(self) -> StoredContract:
        """Read the document, creating an empty one (generation 0) if absent."""
        try:
            raw, version = self._repo.read()
        except NotFoundError:
            version = self._repo.create()
            return StoredContract(contract=Contract(), version=version)

        return StoredContract(contract=self._parse(raw), version=version)

    def load(self) -> Contract:
        """Read-only view; an absent document reads as empty."""
        try:
            raw, _ = self._repo.read()
        except NotFoundError:
            return Contract()
        return self._parse(raw)

    @staticmethod
    def _parse(raw: Optional[str]) -> Contract:
        if not raw:
            return Contract()
        try:
            return Contract.from_json(raw)
        except ValidationError as exc:
            raise ContractError(f"failed to get contract data from config map: {exc}") from exc

    def persist(self, stored: StoredContract) -> None:
        """Write back; a stale version raises ``ConflictError`` from the repository."""
        stored.version = self._repo.write(stored.contract.to_json(), stored.version)
        logger.debug("contract persisted at generation %d", stored.contract.generation)

    # ------------------------------------------------------------------ #
    # Pure document operations                                            #
    # ------------------------------------------------------------------ #
    @staticmethod
    def find_by_owner(contract: Contract, uid: str) -> Optional[int]:
        for i, r in enumerate(contract.resources):
            if r.uid == uid:
                return i
        return None

    @staticmethod
    def diff(existing: Optional[Resource], candidate: Optional[Resource]) -> bool:
        """True when an entry is added, removed, or any of its fields differ."""
        if existing is None or candidate is None:
            return existing is not candidate
        return existing.model_dump() != candidate.model_dump()

    @classmethod
    def upsert(cls, contract: Contract, resource: Resource, index: Optional[int]) -> bool:
        """Add or replace *resource* in place; return whether anything changed."""
        if index is None:
            contract.resources.append(resource)
            return True
        if not cls.diff(contract.resources[index], resource):
            return False
        contract.resources[index] = resource
        return True

    @classmethod
    def remove(cls, contract: Contract, uid: str) -> bool:
        index = cls.find_by_owner(contract, uid)
        if index is None:
            return False
        del contract.resources[index]
        return True

    @staticmethod
    def increment_generation(contract: Contract) -> None:
        contract.generation += 1
