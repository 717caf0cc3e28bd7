"""
Unit tests for EdgeResolver precedence.
"""
from agentflow.flow.edges import EdgeResolver
from agentflow.models.flow import FlowEdge


def _edges(*attrs):
    return [FlowEdge(id=f"e{i}", source="n", target=f"t{i}", **attr) for i, attr in enumerate(attrs)]


class TestResolve:
    """Tests for the resolve() precedence rules."""

    def test_preferred_type_wins(self):
        resolver = EdgeResolver(_edges({}, {"edge_type": "found"}, {"edge_type": "notFound"}))
        assert resolver.resolve("n", "notFound").id == "e2"

    def test_first_preferred_match_in_declared_order(self):
        resolver = EdgeResolver(_edges({"edge_type": "success"}, {"edge_type": "success"}))
        assert resolver.resolve("n", "success").id == "e0"

    def test_default_typed_edge_beats_empty_condition(self):
        """'default' appears first among fallback-eligible edges."""
        resolver = EdgeResolver(_edges(
            {"edge_type": "error"},
            {"edge_type": "default"},
            {"condition": ""}
        ))
        assert resolver.resolve("n", "success").id == "e1"

    def test_empty_condition_is_fallback_eligible(self):
        resolver = EdgeResolver(_edges({"edge_type": "error"}, {"condition": "  "}))
        assert resolver.resolve("n", "success").id == "e1"

    def test_untyped_edge_with_condition_is_default(self):
        """An edge without edgeType is a default edge even when labelled."""
        resolver = EdgeResolver(_edges({"edge_type": "found"}, {"condition": "yes"}, {"condition": "no"}))
        assert resolver.resolve("n", "notFound").id == "e1"

    def test_first_edge_as_last_resort(self):
        resolver = EdgeResolver(_edges({"edge_type": "error"}, {"edge_type": "found"}))
        assert resolver.resolve("n").id == "e0"

    def test_no_outgoing_edges(self):
        resolver = EdgeResolver(_edges({}))
        assert resolver.resolve("other") is None

    def test_only_edges_of_source_considered(self):
        edges = [
            FlowEdge(id="x", source="a", target="b"),
            FlowEdge(id="y", source="n", target="c", edge_type="found"),
        ]
        resolver = EdgeResolver(edges)
        assert resolver.resolve("n").id == "y"


class TestConditionHelpers:
    """Tests for condition label lookups."""

    def test_find_by_condition_ignores_case_and_spaces(self):
        resolver = EdgeResolver(_edges({"condition": " Yes "}, {"condition": "no"}))
        assert resolver.find_by_condition("n", "yes").id == "e0"

    def test_find_by_condition_empty_label(self):
        resolver = EdgeResolver(_edges({"condition": ""}))
        assert resolver.find_by_condition("n", "") is None

    def test_condition_labels_skip_empty(self):
        resolver = EdgeResolver(_edges({"condition": "yes"}, {}, {"condition": " no "}))
        assert resolver.condition_labels("n") == ["yes", "no"]

    def test_find_default_does_not_fall_back_to_first(self):
        resolver = EdgeResolver(_edges({"edge_type": "error"}, {"edge_type": "success"}))
        assert resolver.find_default("n") is None

    def test_typed_edge_without_condition_is_not_default(self):
        resolver = EdgeResolver(_edges({"edge_type": "error"}, {"condition": "yes"}))
        assert resolver.find_default("n").id == "e1"
