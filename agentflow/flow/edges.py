"""
Edge Resolver - Picks the outgoing edge to follow from a node
"""
import logging
from typing import Optional, List, Dict

from ..models.flow import FlowEdge, EdgeType

logger = logging.getLogger(__name__)


class EdgeResolver:
    """
    Deterministic edge selection over a flow's edge set.

    Precedence for `resolve`:
    1. first outgoing edge with the preferred edgeType
    2. first outgoing edge typed 'default'; an edge without edgeType is a
       default edge, whatever its condition
    3. first outgoing edge in declared order

    Every rule is first-match in declared order.
    """

    def __init__(self, edges: List[FlowEdge]):
        self._outgoing: Dict[str, List[FlowEdge]] = {}
        for edge in edges:
            self._outgoing.setdefault(edge.source, []).append(edge)

    def outgoing(self, source_id: str) -> List[FlowEdge]:
        """Outgoing edges of a node in declared order"""
        return list(self._outgoing.get(source_id, []))

    def find_by_type(self, source_id: str, edge_type: str) -> Optional[FlowEdge]:
        for edge in self._outgoing.get(source_id, []):
            if edge.edge_type is not None and edge.edge_type == edge_type:
                return edge
        return None

    def find_default(self, source_id: str) -> Optional[FlowEdge]:
        """
        First edge typed 'default', counting edges with no edgeType.

        Edges typed for another outcome (error, found, ...) never count as
        default even without a condition.
        """
        for edge in self._outgoing.get(source_id, []):
            if edge.edge_type is None or edge.edge_type == EdgeType.DEFAULT:
                return edge
        return None

    def find_by_condition(self, source_id: str, label: str) -> Optional[FlowEdge]:
        """First edge whose condition equals the label, ignoring case and surrounding spaces"""
        wanted = (label or "").strip().lower()
        if not wanted:
            return None
        for edge in self._outgoing.get(source_id, []):
            if edge.has_condition and edge.normalized_condition == wanted:
                return edge
        return None

    def condition_labels(self, source_id: str) -> List[str]:
        """Non-empty condition labels, trimmed, in declared order"""
        return [
            edge.condition.strip()
            for edge in self._outgoing.get(source_id, [])
            if edge.has_condition
        ]

    def resolve(
        self,
        source_id: str,
        preferred_edge_type: Optional[str] = None
    ) -> Optional[FlowEdge]:
        """
        Pick at most one edge to follow.

        Returns None when the node has no outgoing edges at all.
        """
        edges = self._outgoing.get(source_id, [])
        if not edges:
            return None

        if preferred_edge_type:
            edge = self.find_by_type(source_id, preferred_edge_type)
            if edge:
                return edge
            logger.debug(
                f"No '{preferred_edge_type}' edge from '{source_id}', falling back to default"
            )

        edge = self.find_default(source_id)
        if edge:
            return edge

        return edges[0]
