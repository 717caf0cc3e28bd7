"""
Flow definition models - nodes, edges and knowledge items authored in the studio
"""
import json
from enum import Enum
from typing import Optional, Any, List, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Flow node types as written by the studio editor"""

    # ============ CORE ============
    START = "start"
    SEND_MESSAGE = "sendMessage"
    GET_USER_INPUT = "getUserInput"
    CALL_LLM = "callLLM"
    CONDITION = "condition"
    QNA_LOOKUP = "qnaLookup"
    WAIT = "wait"
    END = "end"

    # ============ INTEGRATIONS ============
    API_CALL = "apiCall"

    # ============ PASSTHROUGH ============
    ACTION = "action"
    CODE = "code"
    TRANSITION = "transition"
    AGENT_SKILL = "agentSkill"


PASSTHROUGH_NODE_TYPES = {
    NodeType.ACTION.value,
    NodeType.CODE.value,
    NodeType.TRANSITION.value,
    NodeType.AGENT_SKILL.value,
}


class EdgeType(str, Enum):
    """Semantic edge types used to pick a branch"""
    DEFAULT = "default"
    SUCCESS = "success"
    ERROR = "error"
    INVALID = "invalid"
    FOUND = "found"
    NOT_FOUND = "notFound"


class HttpMethod(str, Enum):
    """Methods accepted by apiCall nodes"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class StudioModel(BaseModel):
    """Base model accepting both camelCase (editor JSON) and snake_case names"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump using the editor's camelCase keys"""
        return self.model_dump(by_alias=True, exclude_none=True)


class FlowNode(StudioModel):
    """
    A single step of a flow.

    `type` is kept as a plain string so definitions written by newer editors
    still load; the interpreter treats types it does not know as no-ops.
    """

    id: str
    type: str
    label: Optional[str] = None
    position: Optional[Dict[str, float]] = None

    # ---- sendMessage ----
    message: Optional[str] = None

    # ---- getUserInput ----
    prompt: Optional[str] = None
    variable_name: Optional[str] = None
    input_type: Optional[str] = None
    validation_rules: Optional[str] = None

    # ---- callLLM ----
    llm_prompt: Optional[str] = None
    output_variable: Optional[str] = None
    use_knowledge: bool = False

    # ---- condition ----
    condition_variable: Optional[str] = None
    use_llm_for_decision: bool = Field(default=False, alias="useLLMForDecision")
    condition_expressions: Optional[List[str]] = None

    # ---- apiCall ----
    api_url: Optional[str] = None
    api_method: HttpMethod = HttpMethod.GET
    api_headers: Optional[Union[Dict[str, str], str]] = None
    api_body_variable: Optional[str] = None
    api_timeout: Optional[int] = None  # milliseconds
    api_retry_attempts: int = 0
    api_output_variable: Optional[str] = None

    # ---- end ----
    end_output_variable: Optional[str] = None

    # ---- qnaLookup ----
    qna_knowledge_base_id: Optional[str] = None
    qna_query_variable: Optional[str] = None
    qna_threshold: float = 0.7
    qna_output_variable: Optional[str] = None
    qna_fallback_text: Optional[str] = None

    # ---- wait ----
    wait_duration_ms: int = 1000

    @field_validator("api_method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    def get_api_headers(self) -> Dict[str, str]:
        """Headers as a mapping; the editor may store them as a JSON string"""
        if not self.api_headers:
            return {}
        if isinstance(self.api_headers, dict):
            return dict(self.api_headers)
        try:
            parsed = json.loads(self.api_headers)
        except json.JSONDecodeError:
            return {}
        if not isinstance(parsed, dict):
            return {}
        return {str(k): str(v) for k, v in parsed.items()}

    @property
    def node_type(self) -> Optional[NodeType]:
        """Known NodeType for this node, or None for unknown types"""
        try:
            return NodeType(self.type)
        except ValueError:
            return None


class FlowEdge(StudioModel):
    """Directed transition between two nodes"""

    id: str
    source: str
    target: str
    label: Optional[str] = None
    condition: Optional[str] = None
    edge_type: Optional[EdgeType] = None  # unset reads as 'default'

    @property
    def has_condition(self) -> bool:
        return bool(self.condition and self.condition.strip())

    @property
    def normalized_condition(self) -> str:
        return (self.condition or "").strip().lower()


class FlowDefinition(StudioModel):
    """Complete user-authored flow: ordered nodes plus edges"""

    flow_id: str = "flow"
    name: str = ""
    description: str = ""
    nodes: List[FlowNode] = Field(default_factory=list)
    edges: List[FlowEdge] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_start_node(self) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.type == NodeType.START.value:
                return node
        return None


class KnowledgeItem(StudioModel):
    """Distilled form of an uploaded knowledge document"""

    id: str
    file_name: str = ""
    uploaded_at: Optional[str] = None
    summary: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def _none_keywords(cls, value: Any) -> Any:
        return value or []
