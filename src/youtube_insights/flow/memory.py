"""Two-tier pipeline state and the fan-out results buffer."""

from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from ..utils.error_handling import ResultSlotError

_MISSING = object()


class Memory:
    """
    State threaded through every node of a run.

    Reads look in the branch-local overlay first and fall back to the global
    store. Item assignment always writes the global store, so a write made in
    one branch is visible to siblings and to the parent immediately.
    """

    def __init__(
        self,
        global_store: Optional[MutableMapping[str, Any]] = None,
        local: Optional[Mapping[str, Any]] = None
    ):
        self._global = global_store if global_store is not None else {}
        self._local: Dict[str, Any] = dict(local or {})

    @property
    def global_store(self) -> MutableMapping[str, Any]:
        return self._global

    @property
    def local(self) -> Mapping[str, Any]:
        return dict(self._local)

    def __getitem__(self, key: str) -> Any:
        if key in self._local:
            return self._local[key]
        return self._global[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._global[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._local or key in self._global

    def get(self, key: str, default: Any = None) -> Any:
        value = self._local.get(key, _MISSING)
        if value is _MISSING:
            return self._global.get(key, default)
        return value

    def set_local(self, key: str, value: Any) -> None:
        """Write to this memory's overlay only."""
        self._local[key] = value

    def fork(self, **local: Any) -> "Memory":
        """
        Create a branch memory.

        The child shares the global store and starts from a copy of this
        overlay updated with ``local``.
        """
        return Memory(self._global, {**self._local, **local})

    @property
    def slot(self) -> "SlotHandle":
        """The result slot owned by the current fan-out branch."""
        handle = self._local.get("slot")
        if not isinstance(handle, SlotHandle):
            raise ResultSlotError("No result slot: memory does not belong to a fan-out branch")
        return handle

    def __repr__(self):
        return f"<Memory global={sorted(self._global)} local={sorted(self._local)}>"


class ResultSlots:
    """
    Fixed-length results buffer owned by a ParallelFlow.

    Every slot starts as ``None``. Branches never see the buffer itself, only
    a ``SlotHandle`` scoped to their own index.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError("size must be non-negative")
        self._values: List[Any] = [None] * size
        self._written = [False] * size
        self._failures: Dict[int, BaseException] = {}

    def __len__(self) -> int:
        return len(self._values)

    def handle(self, index: int) -> "SlotHandle":
        if not 0 <= index < len(self._values):
            raise ResultSlotError(f"Slot {index} is out of range for {len(self)} slots", index=index)
        return SlotHandle(self, index)

    def _write(self, index: int, value: Any) -> None:
        if self._written[index]:
            raise ResultSlotError(f"Slot {index} was already written", index=index)
        self._values[index] = value
        self._written[index] = True

    def values(self) -> List[Any]:
        """Snapshot of every slot, ``None`` where no result was written."""
        return list(self._values)

    def record_failure(self, index: int, error: BaseException) -> None:
        """Mark a branch as failed and drop anything it wrote before failing."""
        self._failures[index] = error
        self._values[index] = None
        self._written[index] = False

    @property
    def failures(self) -> Dict[int, BaseException]:
        return dict(self._failures)

    @property
    def completed(self) -> int:
        return sum(self._written)


class SlotHandle:
    """Write access to exactly one slot of a ResultSlots buffer."""

    __slots__ = ("_slots", "index")

    def __init__(self, slots: ResultSlots, index: int):
        self._slots = slots
        self.index = index

    def set(self, value: Any) -> None:
        self._slots._write(self.index, value)

    @property
    def value(self) -> Any:
        return self._slots._values[self.index]

    def __repr__(self):
        return f"<SlotHandle index={self.index}>"
