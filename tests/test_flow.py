"""Tests for nodes and sequential flows."""
import pytest

from youtube_insights.flow import DEFAULT_ACTION, Flow, Memory, Node
from youtube_insights.utils.error_handling import (
    FlowDefinitionError,
    NodeExecutionError,
    TooManyVisitsError
)


class RecordingNode(Node):
    """Appends its name to ``memory['trace']`` and emits a fixed action."""

    def __init__(self, name, action=DEFAULT_ACTION):
        super().__init__(name)
        self.action = action

    async def prepare(self, memory):
        memory.global_store.setdefault("trace", [])
        return self.name

    async def execute(self, prep_res):
        return prep_res.upper()

    async def finalize(self, memory, prep_res, exec_res):
        memory["trace"].append(exec_res)
        return self.action


class Router(RecordingNode):
    actions = frozenset({"left", "right"})


class Counter(Node):
    """Loops on ``again`` until ``count`` reaches ``limit``."""

    actions = frozenset({"again", DEFAULT_ACTION})

    def __init__(self, limit):
        super().__init__("Counter")
        self.limit = limit

    async def finalize(self, memory, prep_res, exec_res):
        memory["count"] = memory.get("count", 0) + 1
        return "again" if memory["count"] < self.limit else DEFAULT_ACTION


class Failing(Node):
    async def execute(self, prep_res):
        raise ValueError("bad input")


class TestNode:
    """Test cases for Node."""

    def test_default_name(self):
        assert RecordingNode(None).name == "RecordingNode"

    def test_next_returns_successor(self):
        a, b = RecordingNode("a"), RecordingNode("b")

        assert a.next(b) is b
        assert a.successors == {DEFAULT_ACTION: b}

    def test_undeclared_action_rejected_at_wiring(self):
        """Test that wiring an action the node cannot emit fails."""
        with pytest.raises(FlowDefinitionError):
            RecordingNode("a").on("sideways", RecordingNode("b"))

    @pytest.mark.asyncio
    async def test_run_phases_in_order(self):
        memory = Memory()
        action = await RecordingNode("a").run(memory)

        assert action == DEFAULT_ACTION
        assert memory["trace"] == ["A"]

    @pytest.mark.asyncio
    async def test_none_means_default(self):
        class Quiet(Node):
            async def finalize(self, memory, prep_res, exec_res):
                return None

        assert await Quiet().run(Memory()) == DEFAULT_ACTION

    @pytest.mark.asyncio
    async def test_emitting_undeclared_action_fails(self):
        with pytest.raises(FlowDefinitionError):
            await RecordingNode("a", action="sideways").run(Memory())


class TestFlow:
    """Test cases for Flow traversal."""

    @pytest.mark.asyncio
    async def test_linear_chain(self):
        a = RecordingNode("a")
        a.next(RecordingNode("b")).next(RecordingNode("c"))
        memory = Memory()

        action = await Flow(a).run(memory)

        assert memory["trace"] == ["A", "B", "C"]
        assert action == DEFAULT_ACTION

    @pytest.mark.asyncio
    async def test_branch_by_action(self):
        """Test that the emitted action selects the successor."""
        router = Router("router", action="right")
        router.on("left", RecordingNode("l"))
        router.on("right", RecordingNode("r"))
        memory = Memory()

        await Flow(router).run(memory)

        assert memory["trace"] == ["ROUTER", "R"]

    @pytest.mark.asyncio
    async def test_unrouted_action_ends_flow(self):
        """Test that the first action without a successor becomes the flow's action."""
        router = Router("router", action="left")
        router.on("right", RecordingNode("r"))
        flow = Flow(router)

        assert flow.actions == frozenset({"left", DEFAULT_ACTION})
        assert await flow.run(Memory()) == "left"

    def test_cycle_rejected(self):
        """Test that a cyclic graph is a definition error by default."""
        counter = Counter(limit=3)
        counter.on("again", counter)

        with pytest.raises(FlowDefinitionError) as exc_info:
            Flow(counter)
        assert "Counter -> Counter" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_bounded_loop_when_cycles_allowed(self):
        counter = Counter(limit=3)
        counter.on("again", counter)
        memory = Memory()

        await Flow(counter, allow_cycles=True).run(memory)

        assert memory["count"] == 3

    @pytest.mark.asyncio
    async def test_visit_cap(self):
        """Test that a runaway loop hits the per-node visit cap."""
        counter = Counter(limit=1000)
        counter.on("again", counter)
        flow = Flow(counter, allow_cycles=True, max_visits=5)

        with pytest.raises(TooManyVisitsError):
            await flow.run(Memory())

    @pytest.mark.asyncio
    async def test_transitions_are_snapshotted(self):
        """Test that successors added after construction are not followed."""
        a = RecordingNode("a")
        flow = Flow(a)
        a.next(RecordingNode("late"))
        memory = Memory()

        await flow.run(memory)

        assert memory["trace"] == ["A"]

    @pytest.mark.asyncio
    async def test_failure_wrapped_with_stage(self):
        """Test that node failures carry the stage name and the cause."""
        start = RecordingNode("a")
        start.next(Failing("Parser"))

        with pytest.raises(NodeExecutionError) as exc_info:
            await Flow(start).run(Memory())

        error = exc_info.value
        assert error.stage == "Parser"
        assert error.item_index is None
        assert isinstance(error.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_undeclared_emit_inside_flow(self):
        with pytest.raises(NodeExecutionError) as exc_info:
            await Flow(RecordingNode("a", action="sideways")).run(Memory())

        assert isinstance(exc_info.value.__cause__, FlowDefinitionError)

    @pytest.mark.asyncio
    async def test_nested_flows_route_on_inner_action(self):
        """Test that an inner flow's terminal action routes the outer flow."""
        inner_start = RecordingNode("prep")
        inner_start.next(Router("router", action="left"))
        inner = Flow(inner_start, name="Inner")
        inner.on("left", RecordingNode("after"))
        memory = Memory()

        await Flow(inner).run(memory)

        assert memory["trace"] == ["PREP", "ROUTER", "AFTER"]

    def test_nested_flow_rejects_unknown_action(self):
        inner = Flow(RecordingNode("a"))

        with pytest.raises(FlowDefinitionError):
            inner.on("left", RecordingNode("b"))

    @pytest.mark.asyncio
    async def test_nested_failure_not_double_wrapped(self):
        inner_start = RecordingNode("a")
        inner_start.next(Failing("Deep"))

        with pytest.raises(NodeExecutionError) as exc_info:
            await Flow(Flow(inner_start, name="Inner")).run(Memory())

        assert exc_info.value.stage == "Deep"
