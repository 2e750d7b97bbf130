"""Best-effort warm-up of the consensus cache on startup."""

import logging
from dataclasses import dataclass, field

from .. import metrics
from ..types import Epoch, Slot
from .consensus import ConsensusCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BootstrapFailure:
    step: str
    target: str
    error: Exception


@dataclass
class BootstrapReport:
    """Steps attempted during bootstrap and the ones that failed."""

    attempted: int = 0
    failures: list[BootstrapFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class BootstrapLoader:
    """Loads the current context: recent blocks, current and next epoch duties, validators.

    Failures are logged and reported, never raised, so the client is usable
    with a partially warm (or cold) cache.
    """

    def __init__(self, cache: ConsensusCache, slots_per_epoch: int):
        self.cache = cache
        self.slots_per_epoch = slots_per_epoch

    async def load(self, current_slot: Slot, current_epoch: Epoch) -> BootstrapReport:
        report = BootstrapReport()
        current_slot = int(current_slot)
        current_epoch = int(current_epoch)

        for i in range(self.slots_per_epoch):
            slot = current_slot - i
            if slot < 0:
                break
            await self._attempt(report, "block", slot, self.cache.fetch_block(Slot(slot)))

        for epoch in (current_epoch, current_epoch + 1):
            await self._attempt(report, "proposers", epoch, self.cache.fetch_proposers(Epoch(epoch)))

        await self._attempt(report, "validators", "head", self.cache.fetch_validators())

        if report.ok:
            logger.info(f"Loaded current context at slot {current_slot}: {self.cache.stats()}")
        else:
            logger.warning(
                f"Loaded current context at slot {current_slot} with "
                f"{len(report.failures)}/{report.attempted} failed steps"
            )
        return report

    async def _attempt(self, report: BootstrapReport, step: str, target, fetch) -> None:
        report.attempted += 1
        try:
            await fetch
        except Exception as e:
            logger.warning(f"Could not load {step} for {target}: {e}")
            metrics.record_bootstrap_failure(step)
            report.failures.append(BootstrapFailure(step=step, target=str(target), error=e))
