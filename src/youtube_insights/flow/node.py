"""Base unit of pipeline work."""

import logging
from typing import Any, ClassVar, Dict, FrozenSet, Optional

from .memory import Memory
from ..utils.error_handling import FlowDefinitionError

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "default"


class Node:
    """
    A unit of work with a prepare / execute / finalize lifecycle.

    ``prepare`` and ``finalize`` may read and write memory. ``execute`` only
    receives what ``prepare`` returned, so the same node instance can run in
    several fan-out branches at once. ``finalize`` returns the action that
    selects the next node; ``None`` means ``DEFAULT_ACTION``.

    Subclasses declare every action they can emit in ``actions``. Wiring or
    emitting anything else is a ``FlowDefinitionError``.
    """

    actions: ClassVar[FrozenSet[str]] = frozenset({DEFAULT_ACTION})

    def __init__(self, name: Optional[str] = None):
        self.name = name or type(self).__name__
        self.successors: Dict[str, "Node"] = {}

    def next(self, node: "Node", action: str = DEFAULT_ACTION) -> "Node":
        """
        Route ``action`` to ``node``.

        Returns:
            ``node``, so linear chains read ``a.next(b).next(c)``
        """
        if action not in self.actions:
            raise FlowDefinitionError(
                f"{self.name} cannot route undeclared action '{action}'",
                details={"node": self.name, "action": action, "declared": sorted(self.actions)}
            )
        if action in self.successors:
            logger.warning(f"Overwriting successor for action '{action}' on {self.name}")
        self.successors[action] = node
        return node

    def on(self, action: str, node: "Node") -> "Node":
        return self.next(node, action)

    async def prepare(self, memory: Memory) -> Any:
        return None

    async def execute(self, prep_res: Any) -> Any:
        return None

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        return DEFAULT_ACTION

    async def run(self, memory: Memory) -> str:
        """Run the three phases in order and return the emitted action."""
        prep_res = await self.prepare(memory)
        exec_res = await self.execute(prep_res)
        action = await self.finalize(memory, prep_res, exec_res)
        return self._check_action(action)

    def _check_action(self, action: Optional[str]) -> str:
        action = action or DEFAULT_ACTION
        if action not in self.actions:
            raise FlowDefinitionError(
                f"{self.name} emitted undeclared action '{action}'",
                details={"node": self.name, "action": action, "declared": sorted(self.actions)}
            )
        return action

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"
