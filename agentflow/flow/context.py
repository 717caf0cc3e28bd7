"""
Flow Context - Per-conversation variable store threaded through every turn
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Any, Dict, List

logger = logging.getLogger(__name__)

HISTORY_KEY = "conversationHistory"
CURRENT_NODE_KEY = "currentNodeId"
WAITING_KEY = "waitingForInput"

RESERVED_KEYS = (HISTORY_KEY, CURRENT_NODE_KEY, WAITING_KEY)


@dataclass
class FlowContext:
    """
    Conversation state for one end user.

    Flow variables live in `variables`; the interpreter bookkeeping
    (history, current node, waiting node) is kept in typed fields and merged
    back into one flat mapping by `to_dict` for persistence.
    """

    variables: Dict[str, Any] = field(default_factory=dict)
    conversation_history: List[str] = field(default_factory=list)
    current_node_id: Optional[str] = None
    waiting_for_input: Optional[str] = None

    # ---------------------------------------------------------------- lookup

    def get(self, name: str, default: Any = None) -> Any:
        """Get a value by its wire name, including the bookkeeping fields"""
        if name == HISTORY_KEY:
            return self.conversation_history
        if name == CURRENT_NODE_KEY:
            return self.current_node_id if self.current_node_id is not None else default
        if name == WAITING_KEY:
            return self.waiting_for_input if self.waiting_for_input is not None else default
        return self.variables.get(name, default)

    def has(self, name: str) -> bool:
        """True when the name resolves to a non-None value"""
        return self.get(name) is not None

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __getitem__(self, name: str) -> Any:
        if not self.has(name):
            raise KeyError(name)
        return self.get(name)

    # --------------------------------------------------------------- mutation

    def set_variable(self, name: str, value: Any) -> None:
        """Set a flow variable"""
        if name in RESERVED_KEYS:
            raise ValueError(f"'{name}' is reserved for interpreter bookkeeping")
        self.variables[name] = value

    def get_variable(self, name: str, default: Any = None) -> Any:
        """Get a flow variable"""
        return self.variables.get(name, default)

    def add_user_message(self, text: str) -> None:
        self.conversation_history.append(f"User: {text}")

    def add_agent_message(self, text: str) -> None:
        self.conversation_history.append(f"Agent: {text}")

    def set_waiting_input(self, node_id: str) -> None:
        """Mark the conversation as blocked on a getUserInput node"""
        self.waiting_for_input = node_id
        logger.debug(f"Context waiting for input at node '{node_id}'")

    def clear_waiting(self) -> None:
        self.waiting_for_input = None

    def clear_position(self) -> None:
        """Drop transient bookkeeping once the flow is finished or failed"""
        self.current_node_id = None
        self.waiting_for_input = None

    def copy(self) -> "FlowContext":
        return FlowContext(
            variables=dict(self.variables),
            conversation_history=list(self.conversation_history),
            current_node_id=self.current_node_id,
            waiting_for_input=self.waiting_for_input
        )

    # ---------------------------------------------------------- serialization

    def to_dict(self) -> Dict[str, Any]:
        """Flat mapping in the shape the Turn Controller persists"""
        data: Dict[str, Any] = dict(self.variables)
        data[HISTORY_KEY] = list(self.conversation_history)
        if self.current_node_id is not None:
            data[CURRENT_NODE_KEY] = self.current_node_id
        if self.waiting_for_input is not None:
            data[WAITING_KEY] = self.waiting_for_input
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FlowContext":
        """Create context from a persisted flat mapping"""
        data = dict(data or {})
        history = data.pop(HISTORY_KEY, None) or []
        current_node_id = data.pop(CURRENT_NODE_KEY, None)
        waiting = data.pop(WAITING_KEY, None)

        return cls(
            variables=data,
            conversation_history=[str(line) for line in history],
            current_node_id=current_node_id,
            waiting_for_input=waiting
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "FlowContext":
        return cls.from_dict(json.loads(json_str))

    def __str__(self) -> str:
        return (
            f"FlowContext(node={self.current_node_id}, "
            f"waiting={self.waiting_for_input}, "
            f"variables={len(self.variables)}, history={len(self.conversation_history)})"
        )

    def __repr__(self) -> str:
        return self.__str__()


def create_context(initial_variables: Optional[Dict[str, Any]] = None) -> FlowContext:
    """
    Factory function for a fresh conversation context.

    Args:
        initial_variables: Variables known before the first turn (optional)

    Returns:
        New FlowContext with an empty conversation history
    """
    context = FlowContext()

    if initial_variables:
        for name, value in initial_variables.items():
            context.set_variable(name, value)

    return context
