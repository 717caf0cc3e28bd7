"""
Unit tests for FlowContext.
"""
import pytest

from agentflow.flow.context import FlowContext, create_context


class TestFlowContext:
    """Tests for variable access and bookkeeping."""

    def test_create_context_with_variables(self):
        ctx = create_context({"plan": "basic"})
        assert ctx.get("plan") == "basic"
        assert ctx.conversation_history == []
        assert ctx.waiting_for_input is None

    def test_reserved_names_rejected(self):
        ctx = create_context()
        with pytest.raises(ValueError):
            ctx.set_variable("waitingForInput", "n1")

    def test_has_ignores_none(self):
        ctx = create_context({"a": None, "b": 0})
        assert not ctx.has("a")
        assert ctx.has("b")
        assert "b" in ctx
        assert "missing" not in ctx

    def test_getitem_missing_raises(self):
        with pytest.raises(KeyError):
            create_context()["nothing"]

    def test_history_lines(self):
        ctx = create_context()
        ctx.add_agent_message("Hi")
        ctx.add_user_message("Hello")
        assert ctx.conversation_history == ["Agent: Hi", "User: Hello"]

    def test_clear_position(self):
        ctx = FlowContext(current_node_id="a", waiting_for_input="a")
        ctx.clear_position()
        assert ctx.current_node_id is None
        assert ctx.waiting_for_input is None

    def test_copy_is_independent(self):
        ctx = create_context({"x": 1})
        clone = ctx.copy()
        clone.set_variable("x", 2)
        clone.add_user_message("hey")
        assert ctx.get("x") == 1
        assert ctx.conversation_history == []


class TestContextSerialization:
    """Tests for the flat persisted mapping."""

    def test_to_dict_flattens_bookkeeping(self):
        ctx = FlowContext(
            variables={"name": "Ada"},
            conversation_history=["Agent: Hi"],
            current_node_id="ask",
            waiting_for_input="ask"
        )
        assert ctx.to_dict() == {
            "name": "Ada",
            "conversationHistory": ["Agent: Hi"],
            "currentNodeId": "ask",
            "waitingForInput": "ask"
        }

    def test_to_dict_omits_unset_bookkeeping(self):
        data = create_context({"a": 1}).to_dict()
        assert data == {"a": 1, "conversationHistory": []}

    def test_from_dict_splits_reserved_keys(self):
        ctx = FlowContext.from_dict({
            "city": "Porto",
            "conversationHistory": ["User: hi"],
            "waitingForInput": "ask_city"
        })
        assert ctx.variables == {"city": "Porto"}
        assert ctx.conversation_history == ["User: hi"]
        assert ctx.waiting_for_input == "ask_city"
        assert ctx.current_node_id is None

    def test_from_dict_none(self):
        ctx = FlowContext.from_dict(None)
        assert ctx.variables == {}

    def test_json_round_trip(self):
        ctx = FlowContext(variables={"n": 3}, conversation_history=["Agent: ok"], waiting_for_input="x")
        restored = FlowContext.from_json(ctx.to_json())
        assert restored.to_dict() == ctx.to_dict()
