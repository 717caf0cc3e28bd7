from .flow import (
    NodeType,
    EdgeType,
    HttpMethod,
    FlowNode,
    FlowEdge,
    FlowDefinition,
    KnowledgeItem,
    PASSTHROUGH_NODE_TYPES,
)

__all__ = [
    "NodeType",
    "EdgeType",
    "HttpMethod",
    "FlowNode",
    "FlowEdge",
    "FlowDefinition",
    "KnowledgeItem",
    "PASSTHROUGH_NODE_TYPES",
]
