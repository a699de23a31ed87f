"""Sequential graph traversal over nodes connected by actions."""

import logging
from collections import Counter
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .memory import Memory
from .node import Node
from ..utils.error_handling import (
    FlowDefinitionError,
    NodeExecutionError,
    TooManyVisitsError,
    log_error
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_VISITS = 100

Transitions = Dict[Tuple[Node, str], Node]


class Flow(Node):
    """
    A node whose execution is a walk over a graph of nodes.

    The transition table is captured when the flow is built: every node
    reachable from ``start`` contributes its ``(node, action) -> successor``
    edges. Successors registered later are not seen by this flow. The walk
    stops at the first action without a successor and that action becomes
    the flow's own action, which is how flows nest inside other flows.
    """

    def __init__(
        self,
        start: Node,
        name: Optional[str] = None,
        max_visits: Optional[int] = DEFAULT_MAX_VISITS,
        allow_cycles: bool = False
    ):
        """
        Initialize flow.

        Args:
            start: Entry node
            name: Stage name used in logs and errors
            max_visits: Per-node visit cap for one traversal (None disables it)
            allow_cycles: Accept graphs that loop back, e.g. retry loops

        Raises:
            FlowDefinitionError: If the graph has a cycle and cycles are not allowed
        """
        super().__init__(name)
        self.start = start
        self.max_visits = max_visits
        self.transitions: Transitions = self._build_transitions(start, allow_cycles)
        self.actions = self._exposed_actions()

    @property
    def nodes(self) -> List[Node]:
        """Nodes reachable from ``start``, in discovery order."""
        seen = [self.start]
        for (_, _), successor in self.transitions.items():
            if successor not in seen:
                seen.append(successor)
        return seen

    def _build_transitions(self, start: Node, allow_cycles: bool) -> Transitions:
        transitions: Transitions = {}
        state: Dict[Node, str] = {}
        # Iterative DFS; "open" nodes are on the current path
        stack: List[Tuple[Node, List[Tuple[str, Node]]]] = [(start, list(start.successors.items()))]
        state[start] = "open"

        while stack:
            node, pending = stack[-1]
            if not pending:
                state[node] = "done"
                stack.pop()
                continue

            action, successor = pending.pop(0)
            transitions[(node, action)] = successor

            if state.get(successor) == "open":
                if not allow_cycles:
                    path = [entry[0].name for entry in stack] + [successor.name]
                    raise FlowDefinitionError(
                        f"Cycle detected in {self.name}: {' -> '.join(path)}",
                        details={"flow": self.name, "path": path}
                    )
                continue
            if successor not in state:
                state[successor] = "open"
                stack.append((successor, list(successor.successors.items())))

        return transitions

    def _exposed_actions(self) -> FrozenSet[str]:
        """Declared actions of reachable nodes that have no successor."""
        terminal = set()
        for node in self.nodes:
            for action in node.actions:
                if (node, action) not in self.transitions:
                    terminal.add(action)
        return frozenset(terminal)

    async def run(self, memory: Memory) -> str:
        prep_res = await self.prepare(memory)
        last_action = await self._orchestrate(memory)
        action = await self.finalize(memory, prep_res, last_action)
        return self._check_action(action)

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        return exec_res

    async def _orchestrate(self, memory: Memory) -> str:
        """Walk the graph from ``start`` until an action has no successor."""
        current = self.start
        visits: Counter = Counter()
        item_index = memory.get("index") if "slot" in memory.local else None

        while True:
            visits[current] += 1
            if self.max_visits is not None and visits[current] > self.max_visits:
                raise TooManyVisitsError(current.name, self.max_visits)

            logger.debug(f"{self.name}: running {current.name}")
            try:
                action = await current.run(memory)
            except NodeExecutionError:
                raise
            except Exception as e:
                log_error(e, context=current.name, extra={"flow": self.name, "item_index": item_index})
                raise NodeExecutionError(current.name, e, item_index=item_index) from e

            successor = self.transitions.get((current, action))
            if successor is None:
                logger.debug(f"{self.name}: finished at {current.name} with action '{action}'")
                return action
            current = successor
