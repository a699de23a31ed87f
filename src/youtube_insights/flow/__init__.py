"""Node-graph workflow engine: nodes, flows and parallel fan-out."""

from .memory import Memory, ResultSlots, SlotHandle
from .node import DEFAULT_ACTION, Node
from .flow import DEFAULT_MAX_VISITS, Flow
from .parallel import PARALLEL_MAX_VISITS, ParallelFlow

__all__ = [
    "DEFAULT_ACTION",
    "DEFAULT_MAX_VISITS",
    "PARALLEL_MAX_VISITS",
    "Flow",
    "Memory",
    "Node",
    "ParallelFlow",
    "ResultSlots",
    "SlotHandle",
]
