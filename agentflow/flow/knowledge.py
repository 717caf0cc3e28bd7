"""
Knowledge Matcher - keyword/substring lookup over an agent's knowledge items
"""
import logging
from typing import Optional, List, Sequence

from ..models.flow import KnowledgeItem

logger = logging.getLogger(__name__)

KNOWLEDGE_BLOCK_START = "--- AVAILABLE KNOWLEDGE ITEMS START ---"
KNOWLEDGE_BLOCK_END = "--- AVAILABLE KNOWLEDGE ITEMS END ---"


class KnowledgeMatcher:
    """
    Naive containment match, not semantic search.

    An item matches when its summary or any keyword contains the query,
    case-insensitively. The query is used as written, surrounding spaces
    included. The first match in item order wins.
    """

    def __init__(self, items: Optional[Sequence[KnowledgeItem]] = None):
        self.items: List[KnowledgeItem] = list(items or [])

    def match(self, query: Optional[str]) -> Optional[KnowledgeItem]:
        needle = (query or "").lower()
        if not needle:
            return None

        for item in self.items:
            if needle in (item.summary or "").lower():
                logger.debug(f"Knowledge match on summary of '{item.id}'")
                return item
            for keyword in item.keywords:
                if needle in keyword.lower():
                    logger.debug(f"Knowledge match on keyword '{keyword}' of '{item.id}'")
                    return item

        return None


def build_knowledge_block(items: Sequence[KnowledgeItem]) -> str:
    """Advisory block listing every item for a model prompt"""
    if not items:
        return ""

    lines = [KNOWLEDGE_BLOCK_START]
    for item in items:
        lines.append(f"Item ID: {item.id}")
        lines.append(f"Source: {item.file_name}")
        lines.append(f"Summary: {item.summary or ''}")
        lines.append(f"Keywords: {', '.join(item.keywords)}")
        lines.append("---")
    lines.append(KNOWLEDGE_BLOCK_END)

    return "\n".join(lines)
