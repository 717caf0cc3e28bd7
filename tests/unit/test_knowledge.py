"""
Unit tests for the knowledge matcher.
"""
from agentflow.flow.knowledge import (
    KnowledgeMatcher, build_knowledge_block,
    KNOWLEDGE_BLOCK_START, KNOWLEDGE_BLOCK_END
)
from agentflow.models.flow import KnowledgeItem


class TestKnowledgeMatcher:
    """Tests for substring matching."""

    def test_matches_summary_case_insensitive(self, knowledge_items):
        matcher = KnowledgeMatcher(knowledge_items)
        assert matcher.match("BASIC PLAN").id == "k1"

    def test_matches_keyword(self, knowledge_items):
        matcher = KnowledgeMatcher(knowledge_items)
        assert matcher.match("opening hours").id == "k2"

    def test_first_item_wins(self, knowledge_items):
        """'support' hits k2 only; 'p' hits k1 first."""
        matcher = KnowledgeMatcher(knowledge_items)
        assert matcher.match("p").id == "k1"

    def test_no_match(self, knowledge_items):
        assert KnowledgeMatcher(knowledge_items).match("refund policy") is None

    def test_empty_query_never_matches(self, knowledge_items):
        matcher = KnowledgeMatcher(knowledge_items)
        assert matcher.match("") is None
        assert matcher.match(None) is None

    def test_query_used_as_written(self, knowledge_items):
        """Surrounding spaces are part of the query."""
        matcher = KnowledgeMatcher(knowledge_items)
        assert matcher.match(" pricing") is None
        assert matcher.match("plan costs ").id == "k1"

    def test_empty_knowledge_set(self):
        assert KnowledgeMatcher([]).match("pricing") is None

    def test_item_without_summary(self):
        item = KnowledgeItem(id="k3", file_name="faq.md", keywords=["returns"])
        assert KnowledgeMatcher([item]).match("return").id == "k3"


class TestKnowledgeBlock:
    """Tests for the prompt block."""

    def test_lists_every_item(self, knowledge_items):
        block = build_knowledge_block(knowledge_items)
        assert block.startswith(KNOWLEDGE_BLOCK_START)
        assert block.endswith(KNOWLEDGE_BLOCK_END)
        assert "Item ID: k1" in block
        assert "Source: hours.txt" in block
        assert "Keywords: pricing, plans" in block

    def test_empty_items(self):
        assert build_knowledge_block([]) == ""
