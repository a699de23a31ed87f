"""Concurrent fan-out of one sub-traversal per input item."""

import asyncio
import logging
from contextlib import nullcontext
from typing import Any, Dict, FrozenSet, Optional, Sequence

from .flow import Flow
from .memory import Memory, ResultSlots
from .node import DEFAULT_ACTION, Node
from ..utils.error_handling import NodeExecutionError, log_error, log_warning

logger = logging.getLogger(__name__)

PARALLEL_MAX_VISITS = 5_000_000


class ParallelFlow(Flow):
    """
    Runs the wrapped graph once per item, concurrently.

    ``prepare`` returns the items. Each branch gets a forked memory whose
    overlay holds ``item``, ``index`` and ``slot`` (a handle to its own entry
    of a results buffer sized to the item count) plus ``branch_params``.
    ``finalize`` only runs after every branch has finished or failed; the
    default publishes the buffer to ``memory[results_key]``.

    A failing branch leaves its slot as ``None`` and does not cancel the
    others.
    """

    actions: FrozenSet[str] = frozenset({DEFAULT_ACTION})

    def __init__(
        self,
        start: Node,
        results_key: str,
        name: Optional[str] = None,
        max_visits: Optional[int] = PARALLEL_MAX_VISITS,
        max_concurrency: Optional[int] = None,
        allow_cycles: bool = False
    ):
        """
        Initialize parallel flow.

        Args:
            start: Entry node of every branch
            results_key: Global memory key receiving the slot values
            name: Stage name used in logs and errors
            max_visits: Per-node visit cap applied to each branch
            max_concurrency: Upper bound on branches running at once (None for no bound)
            allow_cycles: Accept branch graphs that loop back
        """
        super().__init__(start, name=name, max_visits=max_visits, allow_cycles=allow_cycles)
        if max_concurrency is not None and max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.results_key = results_key
        self.max_concurrency = max_concurrency

    def _exposed_actions(self) -> FrozenSet[str]:
        return type(self).actions

    async def prepare(self, memory: Memory) -> Sequence[Any]:
        raise NotImplementedError(f"{type(self).__name__} must return the items to fan out over")

    def branch_params(self, memory: Memory, item: Any, index: int) -> Dict[str, Any]:
        """Extra branch-local values, e.g. per-branch limits."""
        return {}

    async def run(self, memory: Memory) -> str:
        items = list(await self.prepare(memory) or [])
        slots = ResultSlots(len(items))
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        logger.info(f"{self.name}: fanning out over {len(items)} items")

        # Join barrier: gather returns once every branch has completed or recorded its failure
        await asyncio.gather(*(
            self._run_branch(memory, item, index, slots, semaphore)
            for index, item in enumerate(items)
        ))

        action = await self.finalize(memory, items, slots)
        return self._check_action(action)

    async def _run_branch(
        self,
        memory: Memory,
        item: Any,
        index: int,
        slots: ResultSlots,
        semaphore: Optional[asyncio.Semaphore]
    ) -> None:
        try:
            branch_memory = memory.fork(
                item=item,
                index=index,
                slot=slots.handle(index),
                **self.branch_params(memory, item, index)
            )
            async with semaphore or nullcontext():
                await self._orchestrate(branch_memory)
        except Exception as e:
            if not isinstance(e, NodeExecutionError):
                log_error(e, context=self.name, extra={"item_index": index})
            slots.record_failure(index, e)
            log_warning(
                f"{self.name}: branch {index} failed, slot cleared",
                context=self.name,
                extra={"item_index": index}
            )

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        slots: ResultSlots = exec_res
        memory[self.results_key] = slots.values()

        if slots.failures:
            log_warning(
                f"{self.name}: {len(slots.failures)} of {len(slots)} branches failed (items {sorted(slots.failures)})",
                context=self.name,
                extra={"failed_items": sorted(slots.failures)}
            )
        logger.info(f"{self.name}: {slots.completed}/{len(slots)} results written to '{self.results_key}'")
        return DEFAULT_ACTION
