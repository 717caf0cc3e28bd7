"""
Flow Validator - Static checks over a flow definition before it runs
"""
import logging
from collections import deque
from datetime import datetime
from typing import Tuple, List, Dict, Any, Set, Optional

from ..models.flow import FlowDefinition, FlowNode, NodeType, PASSTHROUGH_NODE_TYPES

logger = logging.getLogger(__name__)


class FlowValidationError:
    """Represents a validation issue"""

    def __init__(
        self,
        code: str,
        message: str,
        node_id: Optional[str] = None,
        severity: str = "error"  # error, warning
    ):
        self.code = code
        self.message = message
        self.node_id = node_id
        self.severity = severity
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "severity": self.severity,
            "timestamp": self.timestamp.isoformat()
        }

    def __str__(self) -> str:
        node_info = f" [Node: {self.node_id}]" if self.node_id else ""
        return f"[{self.severity.upper()}] {self.code}: {self.message}{node_info}"


class FlowValidator:
    """
    Validates flow definitions authored in the studio.

    Errors make a flow unrunnable (no start node, edges pointing nowhere);
    warnings flag flows that run but probably not as intended.
    """

    # Fields a node needs to do anything useful
    REQUIRED_FIELDS: Dict[str, List[str]] = {
        NodeType.START.value: [],
        NodeType.SEND_MESSAGE.value: ["message"],
        NodeType.GET_USER_INPUT.value: ["prompt"],
        NodeType.CALL_LLM.value: ["llm_prompt", "output_variable"],
        NodeType.CONDITION.value: ["condition_variable"],
        NodeType.QNA_LOOKUP.value: ["qna_output_variable"],
        NodeType.API_CALL.value: ["api_url"],
        NodeType.WAIT.value: [],
        NodeType.END.value: [],
    }

    # Types whose routing depends on typed edges
    BRANCH_EDGE_TYPES: Dict[str, List[str]] = {
        NodeType.QNA_LOOKUP.value: ["found", "notFound"],
        NodeType.API_CALL.value: ["success", "error"],
    }

    @classmethod
    def validate(cls, definition: FlowDefinition) -> Tuple[bool, List[FlowValidationError]]:
        """
        Validate a flow definition.

        Args:
            definition: Parsed flow definition

        Returns:
            Tuple of (is_valid, list of issues)
        """
        errors: List[FlowValidationError] = []

        errors.extend(cls._validate_structure(definition))

        node_ids = {node.id for node in definition.nodes}

        for node in definition.nodes:
            errors.extend(cls._validate_node(node))

        errors.extend(cls._validate_edges(definition, node_ids))
        errors.extend(cls._detect_dead_ends(definition))
        errors.extend(cls._detect_orphan_nodes(definition))
        errors.extend(cls._detect_input_free_cycles(definition))

        is_valid = not any(e.severity == "error" for e in errors)

        if errors:
            logger.warning(f"Flow '{definition.flow_id}' validation found {len(errors)} issues")
            for error in errors:
                if error.severity == "error":
                    logger.error(str(error))
                else:
                    logger.warning(str(error))

        return is_valid, errors

    @classmethod
    def _validate_structure(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Start node count and unique node IDs"""
        errors = []

        start_nodes = [n for n in definition.nodes if n.type == NodeType.START.value]
        if not start_nodes:
            errors.append(FlowValidationError(
                "MISSING_START_NODE",
                "Flow must have exactly one 'start' node"
            ))
        elif len(start_nodes) > 1:
            errors.append(FlowValidationError(
                "MULTIPLE_START_NODES",
                f"Flow has {len(start_nodes)} 'start' nodes; only the first is used",
                start_nodes[1].id,
                severity="warning"
            ))

        seen: Set[str] = set()
        for node in definition.nodes:
            if node.id in seen:
                errors.append(FlowValidationError(
                    "DUPLICATE_NODE_ID",
                    f"Duplicate node ID: {node.id}",
                    node.id
                ))
            seen.add(node.id)

        return errors

    @classmethod
    def _validate_node(cls, node: FlowNode) -> List[FlowValidationError]:
        """Validate a single node's type and fields"""
        errors = []

        known_types = {t.value for t in NodeType}
        if node.type not in known_types:
            errors.append(FlowValidationError(
                "UNKNOWN_NODE_TYPE",
                f"Node type '{node.type}' is not supported and will be skipped",
                node.id,
                severity="warning"
            ))
            return errors

        if node.type in PASSTHROUGH_NODE_TYPES:
            errors.append(FlowValidationError(
                "PASSTHROUGH_NODE",
                f"Node type '{node.type}' is not executed by the interpreter",
                node.id,
                severity="warning"
            ))

        for field in cls.REQUIRED_FIELDS.get(node.type, []):
            if not getattr(node, field, None):
                errors.append(FlowValidationError(
                    "MISSING_NODE_FIELD",
                    f"Node type '{node.type}' requires field '{field}'",
                    node.id,
                    severity="warning"
                ))

        if node.type == NodeType.API_CALL.value and node.api_url:
            url = node.api_url
            if not (url.startswith("http://") or url.startswith("https://") or url.startswith("{{")):
                errors.append(FlowValidationError(
                    "INVALID_URL",
                    "URL must start with http:// or https://",
                    node.id,
                    severity="warning"
                ))

        return errors

    @classmethod
    def _validate_edges(cls, definition: FlowDefinition, valid_node_ids: Set[str]) -> List[FlowValidationError]:
        """Validate edge endpoints and IDs"""
        errors = []
        edge_ids = set()

        for edge in definition.edges:
            if edge.id in edge_ids:
                errors.append(FlowValidationError(
                    "DUPLICATE_EDGE_ID",
                    f"Duplicate edge ID: {edge.id}",
                    severity="warning"
                ))
            edge_ids.add(edge.id)

            if edge.source not in valid_node_ids:
                errors.append(FlowValidationError(
                    "INVALID_EDGE_SOURCE",
                    f"Edge '{edge.id}' source '{edge.source}' does not exist"
                ))

            if edge.target not in valid_node_ids:
                errors.append(FlowValidationError(
                    "INVALID_EDGE_TARGET",
                    f"Edge '{edge.id}' target '{edge.target}' does not exist"
                ))

        return errors

    @classmethod
    def _detect_dead_ends(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Non-end nodes without outgoing edges stop the flow silently"""
        errors = []
        sources = {edge.source for edge in definition.edges}

        for node in definition.nodes:
            if node.type == NodeType.END.value:
                continue
            if node.id not in sources:
                errors.append(FlowValidationError(
                    "DEAD_END",
                    f"Non-end node '{node.id}' has no outgoing edge",
                    node.id,
                    severity="warning"
                ))
                continue

            expected = cls.BRANCH_EDGE_TYPES.get(node.type)
            if expected:
                present = {
                    edge.edge_type.value
                    for edge in definition.edges
                    if edge.source == node.id and edge.edge_type is not None
                }
                missing = [t for t in expected if t not in present]
                if missing:
                    errors.append(FlowValidationError(
                        "MISSING_BRANCH_EDGE",
                        f"Node '{node.id}' has no edge typed {', '.join(missing)}; default edge will be used",
                        node.id,
                        severity="warning"
                    ))

        return errors

    @classmethod
    def _adjacency(cls, definition: FlowDefinition) -> Dict[str, List[str]]:
        adjacency: Dict[str, List[str]] = {node.id: [] for node in definition.nodes}
        for edge in definition.edges:
            if edge.source in adjacency:
                adjacency[edge.source].append(edge.target)
        return adjacency

    @classmethod
    def _detect_orphan_nodes(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """Detect nodes that are not reachable from the start node"""
        errors = []
        start = definition.get_start_node()

        if not start:
            return errors

        adjacency = cls._adjacency(definition)

        reachable = set()
        queue = deque([start.id])

        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)

            for next_node in adjacency.get(current, []):
                if next_node not in reachable:
                    queue.append(next_node)

        for node in definition.nodes:
            if node.id not in reachable:
                errors.append(FlowValidationError(
                    "ORPHAN_NODE",
                    f"Node '{node.id}' is not reachable from start node",
                    node.id,
                    severity="warning"
                ))

        return errors

    @classmethod
    def _detect_input_free_cycles(cls, definition: FlowDefinition) -> List[FlowValidationError]:
        """
        Cycles without a getUserInput node can only stop at the step budget.
        """
        errors = []
        adjacency = cls._adjacency(definition)
        types = {node.id: node.type for node in definition.nodes}

        visited: Set[str] = set()
        stack: List[str] = []
        on_stack: Set[str] = set()
        reported: Set[frozenset] = set()

        def dfs(node_id: str) -> None:
            visited.add(node_id)
            stack.append(node_id)
            on_stack.add(node_id)

            for next_node in adjacency.get(node_id, []):
                if next_node not in adjacency:
                    continue
                if next_node in on_stack:
                    cycle = stack[stack.index(next_node):]
                    key = frozenset(cycle)
                    has_input = any(types[n] == NodeType.GET_USER_INPUT.value for n in cycle)
                    if not has_input and key not in reported:
                        reported.add(key)
                        errors.append(FlowValidationError(
                            "LOOP_WITHOUT_INPUT",
                            f"Cycle {' -> '.join(cycle + [next_node])} never waits for input",
                            next_node,
                            severity="warning"
                        ))
                elif next_node not in visited:
                    dfs(next_node)

            stack.pop()
            on_stack.discard(node_id)

        for node in definition.nodes:
            if node.id not in visited:
                dfs(node.id)

        return errors


def validate_flow(definition: FlowDefinition) -> Tuple[bool, List[FlowValidationError]]:
    """Convenience wrapper around FlowValidator.validate"""
    return FlowValidator.validate(definition)
