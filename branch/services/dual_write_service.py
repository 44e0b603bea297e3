"""
Dual-write fact store.

While the legacy tables are still read by older deployments, every derived
fact is written to the legacy table of its category first and to
tags_unified second. Each write runs in its own savepoint: a failure on one
side is logged and counted, the other side's write is kept, and nothing is
retried. Re-running the scan or the tag migration is the recovery path.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from branch.repositories.fact_store import DerivedFact, FactKey, FactStore
from branch.repositories.legacy_fact_repository import LegacyFactRepository
from branch.repositories.unified_tag_repository import UnifiedTagRepository

logger = logging.getLogger(__name__)


@dataclass
class PartialFailure:
    store_name: str
    fact: DerivedFact
    error: str


@dataclass
class DualWriteOutcome:
    legacy_ok: bool
    unified_ok: bool
    # False when the unified row already existed
    unified_inserted: bool = False


class DualWriteFactStore:
    """FactStore that writes to a legacy and a unified store in that order."""
    
    store_name = "dual"
    
    def __init__(self, db: AsyncSession, legacy: FactStore, unified: FactStore):
        self.db = db
        self.legacy = legacy
        self.unified = unified
        self.failures: list[PartialFailure] = []
    
    @classmethod
    def for_session(cls, db: AsyncSession) -> "DualWriteFactStore":
        return cls(db, LegacyFactRepository(db), UnifiedTagRepository(db))
    
    @property
    def partial_failures(self) -> int:
        return len(self.failures)
    
    async def _write(self, store: FactStore, fact: DerivedFact) -> tuple[bool, bool]:
        try:
            async with self.db.begin_nested():
                changed = await store.record_fact(fact)
            return True, changed
        except Exception as exc:
            logger.exception(
                "Dual-write to %s store failed for %s/%s (owner=%s repo=%s)",
                store.store_name, fact.category, fact.tag_name, fact.owner_id, fact.repo_name,
            )
            self.failures.append(PartialFailure(store.store_name, fact, str(exc)))
            return False, False
    
    async def write(self, fact: DerivedFact) -> DualWriteOutcome:
        legacy_ok, _ = await self._write(self.legacy, fact)
        unified_ok, unified_inserted = await self._write(self.unified, fact)
        return DualWriteOutcome(legacy_ok, unified_ok, unified_inserted)
    
    async def record_fact(self, fact: DerivedFact) -> bool:
        outcome = await self.write(fact)
        return outcome.unified_inserted
    
    async def list_fact_keys(self) -> list[FactKey]:
        # tags_unified is the source of truth for reads
        return await self.unified.list_fact_keys()
