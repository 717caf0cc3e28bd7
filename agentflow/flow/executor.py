"""
Flow Interpreter - walks a flow definition turn by turn

Each call to `execute_turn` runs a bounded loop over nodes, starting at the
resume point (or the start node), and returns as soon as the flow must wait
for user input, reaches an end node, cannot continue, or fails. Suspension is
a value in the returned FlowResult, never a blocked task.
"""
import asyncio
import json
import logging
from typing import Optional, Any, Dict, List, Callable, Awaitable, Sequence, Tuple, Union

from ..core.config import Settings, get_settings
from ..models.flow import (
    FlowDefinition, FlowNode, FlowEdge, KnowledgeItem, NodeType, EdgeType,
    PASSTHROUGH_NODE_TYPES
)
from ..services.reasoning import (
    ReasoningClient, ReasoningError, ReasoningTimeoutError, create_reasoning_client
)
from ..services.http_request import execute_http_request
from .context import FlowContext
from .edges import EdgeResolver
from .knowledge import KnowledgeMatcher, build_knowledge_block
from .result import (
    FlowResult, StepResult, StepType, TurnStatus,
    message_step, continue_step, wait_input_step, end_step
)
from .template import render_template, format_value
from .validator import FlowValidator, FlowValidationError

logger = logging.getLogger(__name__)

NodeHandler = Callable[[FlowNode, "TurnState"], Awaitable[StepResult]]

MAX_STEPS_ERROR = "Flow execution exceeded maximum steps."
NO_START_ERROR = "No start node found or specified."


class TurnState:
    """Mutable per-turn data shared by the node handlers"""

    def __init__(
        self,
        context: FlowContext,
        message: Optional[str],
        knowledge_items: Sequence[KnowledgeItem],
        persona_info: Optional[str]
    ):
        self.context = context
        self.message = message
        self.message_consumed = False
        self.knowledge_items = list(knowledge_items)
        self.persona_info = persona_info
        self.debug_log: List[str] = []

    @property
    def pending_message(self) -> Optional[str]:
        """Incoming message if no input node has taken it yet"""
        if self.message_consumed or not self.message:
            return None
        return self.message

    def note(self, text: str) -> None:
        self.debug_log.append(text)


class FlowInterpreter:
    """
    State machine over a read-only FlowDefinition.

    One interpreter can serve many conversations at once: all mutable state
    lives in the FlowContext passed to `execute_turn`.
    """

    def __init__(
        self,
        definition: Union[FlowDefinition, Dict[str, Any]],
        reasoning_client: Optional[ReasoningClient] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the FlowInterpreter.

        Args:
            definition: Flow definition (model or editor JSON)
            reasoning_client: Model seam for callLLM / LLM conditions;
                built from settings on first use when omitted
            settings: Engine settings (defaults to the cached settings)
        """
        if isinstance(definition, dict):
            definition = FlowDefinition.model_validate(definition)

        self.definition = definition
        self.settings = settings or get_settings()
        self.edges = EdgeResolver(definition.edges)
        self._reasoning_client = reasoning_client

        # First node wins on duplicate IDs, matching a linear search
        self.nodes: Dict[str, FlowNode] = {}
        for node in definition.nodes:
            self.nodes.setdefault(node.id, node)

        self._handlers: Dict[str, NodeHandler] = self._register_handlers()

        # Issues are reported, not enforced; a broken edge fails when reached
        self.is_valid = True
        self.validation_issues: List[FlowValidationError] = []
        self._issues_reported = False
        if self.settings.VALIDATE_ON_LOAD:
            self.is_valid, self.validation_issues = FlowValidator.validate(definition)

        logger.info(
            f"FlowInterpreter initialized for flow '{definition.flow_id}' "
            f"with {len(self.nodes)} nodes and {len(definition.edges)} edges"
        )

    def _register_handlers(self) -> Dict[str, NodeHandler]:
        """Register all node type handlers"""
        handlers: Dict[str, NodeHandler] = {
            NodeType.START.value: self._handle_start,
            NodeType.SEND_MESSAGE.value: self._handle_send_message,
            NodeType.GET_USER_INPUT.value: self._handle_get_user_input,
            NodeType.CALL_LLM.value: self._handle_call_llm,
            NodeType.CONDITION.value: self._handle_condition,
            NodeType.QNA_LOOKUP.value: self._handle_qna_lookup,
            NodeType.WAIT.value: self._handle_wait,
            NodeType.END.value: self._handle_end,
            NodeType.API_CALL.value: self._handle_api_call,
        }
        for node_type in PASSTHROUGH_NODE_TYPES:
            handlers[node_type] = self._handle_passthrough
        return handlers

    @property
    def reasoning_client(self) -> ReasoningClient:
        if self._reasoning_client is None:
            self._reasoning_client = create_reasoning_client(self.settings)
        return self._reasoning_client

    # ==================== Turn Execution ====================

    async def execute_turn(
        self,
        context: Optional[Union[FlowContext, Dict[str, Any]]] = None,
        current_message: Optional[str] = None,
        start_node_id: Optional[str] = None,
        knowledge_items: Optional[Sequence[Union[KnowledgeItem, Dict[str, Any]]]] = None,
        persona_info: Optional[str] = None
    ) -> FlowResult:
        """
        Run one turn of the flow.

        Args:
            context: Context from the previous turn (fresh one if omitted)
            current_message: The user's latest text, if any
            start_node_id: Resume point; defaults to the node waiting for
                input, then to the start node
            knowledge_items: Agent knowledge for qnaLookup / callLLM nodes
            persona_info: Agent identity prepended to model prompts

        Returns:
            FlowResult with messages, debug log and the updated context
        """
        ctx = self._coerce_context(context)
        items = [
            item if isinstance(item, KnowledgeItem) else KnowledgeItem.model_validate(item)
            for item in (knowledge_items or [])
        ]
        state = TurnState(ctx, current_message, items, persona_info)
        result = FlowResult(updated_context=ctx)
        self._report_validation_errors(state)

        try:
            current_node_id = self._resolve_entry_node(ctx, start_node_id)
            if not current_node_id:
                result.error = NO_START_ERROR
            else:
                await self._run_loop(current_node_id, state, result)

        except Exception as e:
            logger.exception(f"Error executing flow '{self.definition.flow_id}': {e}")
            result.error = str(e) or "An unexpected error occurred during flow execution."

        result.debug_log = state.debug_log
        self._finalize(result)

        logger.info(
            f"Turn finished for flow '{self.definition.flow_id}': status={result.status.value}, "
            f"messages={len(result.messages_to_send)}, next={result.next_node_id}"
        )

        return result

    async def _run_loop(self, current_node_id: str, state: TurnState, result: FlowResult) -> None:
        ctx = state.context
        max_steps = self.settings.FLOW_MAX_STEPS
        steps = 0

        while current_node_id:
            if steps >= max_steps:
                state.note(f"Step budget of {max_steps} exhausted before node '{current_node_id}'")
                result.error = MAX_STEPS_ERROR
                return
            steps += 1

            node = self.nodes.get(current_node_id)
            if not node:
                result.error = f"Node with ID {current_node_id} not found."
                return

            ctx.current_node_id = node.id

            handler = self._handlers.get(node.type, self._handle_unknown)
            step = await handler(node, state)

            if step.note:
                state.note(f"[{node.id}] {step.note}")

            for message in step.messages:
                result.messages_to_send.append(message)
                ctx.add_agent_message(message)

            if step.step_type == StepType.WAIT_INPUT:
                result.status = TurnStatus.WAITING_INPUT
                result.next_node_id = node.id
                return

            if step.step_type == StepType.END:
                result.is_flow_finished = True
                result.status = TurnStatus.FINISHED
                return

            if step.is_dead_end:
                state.note(f"[{node.id}] No outgoing edge to follow; flow halted")
                result.status = TurnStatus.HALTED
                ctx.current_node_id = None
                return

            current_node_id = step.next_node_id

    def _finalize(self, result: FlowResult) -> None:
        """Settle status and clear bookkeeping on terminal outcomes"""
        ctx = result.updated_context

        if result.error:
            result.status = TurnStatus.ERROR
            result.next_node_id = None
            result.is_flow_finished = False
            ctx.clear_position()
            return

        if result.is_flow_finished:
            result.next_node_id = None
            ctx.clear_position()

    def _report_validation_errors(self, state: TurnState) -> None:
        """Copy load-time errors into the debug log of the first turn"""
        if self._issues_reported:
            return
        self._issues_reported = True
        for issue in self.validation_issues:
            if issue.severity == "error":
                state.note(f"Flow validation: {issue}")

    def _resolve_entry_node(self, ctx: FlowContext, start_node_id: Optional[str]) -> Optional[str]:
        if start_node_id:
            return start_node_id
        if ctx.waiting_for_input:
            return ctx.waiting_for_input
        start = self.definition.get_start_node()
        return start.id if start else None

    @staticmethod
    def _coerce_context(context: Optional[Union[FlowContext, Dict[str, Any]]]) -> FlowContext:
        if context is None:
            return FlowContext()
        if isinstance(context, FlowContext):
            return context
        return FlowContext.from_dict(context)

    # ==================== Edge helpers ====================

    def _follow(self, node: FlowNode, preferred_edge_type: Optional[str] = None) -> StepResult:
        edge = self.edges.resolve(node.id, preferred_edge_type)
        return self._step_for_edge(edge)

    @staticmethod
    def _step_for_edge(
        edge: Optional[FlowEdge],
        messages: Optional[List[str]] = None,
        note: Optional[str] = None
    ) -> StepResult:
        if edge is None:
            return StepResult(messages=messages or [], note=note)
        if not messages:
            return continue_step(edge.target, edge.id, note)
        step = message_step(messages, edge.target, edge.id)
        step.note = note
        return step

    # ==================== Node Handlers ====================

    async def _handle_start(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle start node"""
        return self._follow(node)

    async def _handle_send_message(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle sendMessage node"""
        messages = []
        if node.message:
            messages.append(render_template(node.message, state.context))

        edge = self.edges.resolve(node.id)
        return self._step_for_edge(edge, messages)

    async def _handle_get_user_input(self, node: FlowNode, state: TurnState) -> StepResult:
        """
        Handle getUserInput node.

        First visit emits the prompt and suspends. The next turn delivers the
        user's answer to this node, which stores it and advances.
        """
        ctx = state.context

        if ctx.waiting_for_input == node.id:
            answer = state.pending_message
            if answer is None:
                return wait_input_step(note="Still waiting for input")

            state.message_consumed = True
            if node.variable_name:
                ctx.set_variable(node.variable_name, answer)
            ctx.add_user_message(answer)
            ctx.clear_waiting()

            # Input validation is not enforced yet; the 'invalid' edge is never taken
            edge = self.edges.resolve(node.id, EdgeType.DEFAULT.value)
            return self._step_for_edge(
                edge,
                note=f"Input stored in '{node.variable_name}'" if node.variable_name else "Input received"
            )

        if ctx.waiting_for_input:
            logger.warning(
                f"Context was waiting at '{ctx.waiting_for_input}' but flow reached '{node.id}'"
            )

        messages = []
        if node.prompt:
            messages.append(render_template(node.prompt, ctx))
        ctx.set_waiting_input(node.id)

        return wait_input_step(messages, note="Waiting for user input")

    async def _handle_call_llm(self, node: FlowNode, state: TurnState) -> StepResult:
        """
        Handle callLLM node.

        The model's answer is stored in `outputVariable` only; a later
        sendMessage node decides whether the user sees it.
        """
        if not node.llm_prompt or not node.output_variable:
            return self._follow_with_note(node, "Misconfigured callLLM node: missing llmPrompt or outputVariable")

        prompt = self._compose_prompt(node, state)

        try:
            text = await self._generate(prompt)
            state.context.set_variable(node.output_variable, text)
            note = f"Model output stored in '{node.output_variable}'"

        except ReasoningError as e:
            logger.error(f"callLLM node '{node.id}' failed: {e}")
            note = f"Model call failed, '{node.output_variable}' left unchanged: {e}"

        return self._follow_with_note(node, note)

    def _compose_prompt(self, node: FlowNode, state: TurnState) -> str:
        parts = []

        if state.persona_info:
            parts.append(f"You are acting as the following persona:\n{state.persona_info}")

        if node.use_knowledge and state.knowledge_items:
            parts.append(
                "The following knowledge items may help. Use them if relevant.\n"
                + build_knowledge_block(state.knowledge_items)
            )

        parts.append(render_template(node.llm_prompt or "", state.context))

        return "\n\n".join(parts)

    async def _handle_condition(self, node: FlowNode, state: TurnState) -> StepResult:
        """
        Handle condition node.

        Matches the variable's value against edge condition labels, exactly or
        through the model. Falls back to the default edge; with no default
        edge the flow halts.
        """
        ctx = state.context
        raw_value = ctx.get(node.condition_variable) if node.condition_variable else None

        if raw_value is None:
            edge = self.edges.find_default(node.id)
            return self._step_for_edge(
                edge,
                note=f"Condition variable '{node.condition_variable}' not set; using default edge"
            )

        value = format_value(raw_value).strip().lower()

        if node.use_llm_for_decision:
            edge, note = await self._choose_edge_with_model(node, value)
        else:
            edge = self.edges.find_by_condition(node.id, value)
            note = f"Value '{value}' matched edge condition" if edge else None

        if edge is None:
            edge = self.edges.find_default(node.id)
            fallback = f"No edge matched '{value}'; using default edge" if edge else (
                f"No edge matched '{value}' and no default edge exists"
            )
            note = f"{note}; {fallback}" if note else fallback

        return self._step_for_edge(edge, note=note)

    async def _choose_edge_with_model(
        self,
        node: FlowNode,
        value: str
    ) -> Tuple[Optional[FlowEdge], Optional[str]]:
        labels = self.edges.condition_labels(node.id)
        if not labels:
            return None, None

        prompt = (
            "Classify the following value into exactly one of these categories: "
            f"{', '.join(labels)}.\n"
            f"Value: \"{value}\"\n"
            "Respond with only the category name and nothing else."
        )

        try:
            answer = await self._generate(prompt)
        except ReasoningError as e:
            logger.error(f"Condition node '{node.id}' model decision failed: {e}")
            return None, f"Model decision failed: {e}"

        choice = answer.strip().lower()
        edge = self.edges.find_by_condition(node.id, choice)
        return edge, f"Model chose '{choice}'"

    async def _handle_qna_lookup(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle qnaLookup node"""
        ctx = state.context

        query = None
        if node.qna_query_variable and ctx.has(node.qna_query_variable):
            query = format_value(ctx.get(node.qna_query_variable))
        if query is None:
            query = state.message

        item = KnowledgeMatcher(state.knowledge_items).match(query)

        if item:
            if node.qna_output_variable:
                ctx.set_variable(node.qna_output_variable, item.summary or "")
            edge = self.edges.resolve(node.id, EdgeType.FOUND.value)
            return self._step_for_edge(edge, note=f"Knowledge item '{item.id}' matched")

        fallback = node.qna_fallback_text or self.settings.KNOWLEDGE_FALLBACK_TEXT
        if node.qna_output_variable:
            ctx.set_variable(node.qna_output_variable, fallback)
        edge = self.edges.resolve(node.id, EdgeType.NOT_FOUND.value)
        return self._step_for_edge(edge, note="No knowledge item matched")

    async def _handle_wait(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle wait node - blocking delay inside the turn"""
        duration_ms = max(0, min(node.wait_duration_ms, self.settings.WAIT_MAX_MS))

        logger.debug(f"Wait node '{node.id}': sleeping {duration_ms}ms")
        await asyncio.sleep(duration_ms / 1000)

        return self._follow_with_note(node, f"Waited {duration_ms}ms")

    async def _handle_end(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle end node - terminate flow"""
        note = "Flow finished"
        if node.end_output_variable:
            value = state.context.get(node.end_output_variable)
            note = f"Flow finished with {node.end_output_variable}={value!r}"
        return end_step(note)

    async def _handle_api_call(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle apiCall node - HTTP request with success/error branches"""
        if not node.api_url:
            return self._follow_with_note(node, "Misconfigured apiCall node: missing apiUrl", EdgeType.ERROR.value)

        ctx = state.context
        url = render_template(node.api_url, ctx)
        headers = {k: render_template(v, ctx) for k, v in node.get_api_headers().items()}

        body = None
        if node.api_body_variable and ctx.has(node.api_body_variable):
            body = ctx.get(node.api_body_variable)
            if isinstance(body, str):
                try:
                    body = json.loads(body)
                except json.JSONDecodeError:
                    logger.debug(f"apiCall node '{node.id}': body is not JSON, sending it as raw text")

        timeout_ms = node.api_timeout or self.settings.API_CALL_DEFAULT_TIMEOUT_MS
        call = await execute_http_request(
            url,
            method=node.api_method.value,
            headers=headers,
            body=body,
            timeout_seconds=timeout_ms / 1000,
            retry_attempts=node.api_retry_attempts
        )

        if call.status_code is not None and node.api_output_variable:
            ctx.set_variable(node.api_output_variable, call.text)

        if call.success:
            return self._follow_with_note(node, f"HTTP {call.status_code}", EdgeType.SUCCESS.value)

        return self._follow_with_note(node, f"Request failed: {call.error}", EdgeType.ERROR.value)

    async def _handle_passthrough(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle action/code/transition/agentSkill nodes, which run outside the interpreter"""
        return self._follow_with_note(node, f"'{node.type}' node not executed here; passing through")

    async def _handle_unknown(self, node: FlowNode, state: TurnState) -> StepResult:
        """Handle unknown node types"""
        logger.warning(f"Unknown node type: {node.type}")
        return self._follow_with_note(node, f"Unknown node type '{node.type}' skipped")

    def _follow_with_note(
        self,
        node: FlowNode,
        note: str,
        preferred_edge_type: Optional[str] = None
    ) -> StepResult:
        step = self._follow(node, preferred_edge_type)
        step.note = note
        return step

    # ==================== Reasoning ====================

    async def _generate(self, prompt: str) -> str:
        """Call the model with the configured per-call timeout"""
        timeout = self.settings.REASONING_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(self.reasoning_client.generate(prompt), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ReasoningTimeoutError(f"Model call exceeded {timeout}s") from e
        except ReasoningError:
            raise
        except Exception as e:
            raise ReasoningError(str(e) or e.__class__.__name__) from e


async def execute_agent_flow(
    flow_definition: Union[FlowDefinition, Dict[str, Any]],
    current_context: Optional[Union[FlowContext, Dict[str, Any]]] = None,
    current_message: Optional[str] = None,
    start_node_id: Optional[str] = None,
    knowledge_items: Optional[Sequence[Union[KnowledgeItem, Dict[str, Any]]]] = None,
    persona_info: Optional[str] = None,
    reasoning_client: Optional[ReasoningClient] = None,
    settings: Optional[Settings] = None
) -> FlowResult:
    """Run one turn of a flow; functional wrapper around FlowInterpreter"""
    interpreter = FlowInterpreter(flow_definition, reasoning_client, settings)
    return await interpreter.execute_turn(
        current_context,
        current_message=current_message,
        start_node_id=start_node_id,
        knowledge_items=knowledge_items,
        persona_info=persona_info
    )


def create_flow_interpreter(
    definition: Union[FlowDefinition, Dict[str, Any]],
    reasoning_client: Optional[ReasoningClient] = None,
    settings: Optional[Settings] = None
) -> FlowInterpreter:
    """Factory function to create a FlowInterpreter"""
    return FlowInterpreter(definition, reasoning_client, settings)
