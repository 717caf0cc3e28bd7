"""
Conversation simulator - drives a flow through several turns in memory

Plays the part the Turn Controller plays in production (keep the context and
resume point between turns) so flow authors can try a flow before deploying
it, from tests or from the console runner in main.py.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Any, Dict, List, Sequence, Union, Iterable

from ..core.config import Settings
from ..models.flow import FlowDefinition, KnowledgeItem
from ..services.reasoning import ReasoningClient
from .context import FlowContext, create_context
from .executor import FlowInterpreter
from .result import FlowResult

logger = logging.getLogger(__name__)


@dataclass
class ConversationTranscript:
    """Every turn of a simulated conversation"""
    turns: List[FlowResult] = field(default_factory=list)

    @property
    def last(self) -> Optional[FlowResult]:
        return self.turns[-1] if self.turns else None

    @property
    def messages(self) -> List[str]:
        return [message for turn in self.turns for message in turn.messages_to_send]

    @property
    def context(self) -> Optional[FlowContext]:
        return self.last.updated_context if self.last else None


class ConversationSimulator:
    """
    Keeps one conversation's context between turns.

    `start()` runs the initialization turn; `send()` delivers a user message
    and resumes from wherever the previous turn suspended.
    """

    def __init__(
        self,
        definition: Union[FlowDefinition, Dict[str, Any]],
        knowledge_items: Optional[Sequence[KnowledgeItem]] = None,
        persona_info: Optional[str] = None,
        reasoning_client: Optional[ReasoningClient] = None,
        settings: Optional[Settings] = None,
        initial_variables: Optional[Dict[str, Any]] = None
    ):
        self.interpreter = FlowInterpreter(definition, reasoning_client, settings)
        self.knowledge_items = list(knowledge_items or [])
        self.persona_info = persona_info
        self.context = create_context(initial_variables)
        self.next_node_id: Optional[str] = None
        self.transcript = ConversationTranscript()

    @property
    def is_finished(self) -> bool:
        last = self.transcript.last
        return bool(last and last.is_flow_finished)

    async def start(self) -> FlowResult:
        return await self._turn(None)

    async def send(self, message: str) -> FlowResult:
        return await self._turn(message)

    async def _turn(self, message: Optional[str]) -> FlowResult:
        result = await self.interpreter.execute_turn(
            self.context,
            current_message=message,
            start_node_id=self.next_node_id,
            knowledge_items=self.knowledge_items,
            persona_info=self.persona_info
        )

        self.context = result.updated_context
        self.next_node_id = result.next_node_id
        self.transcript.turns.append(result)

        if result.error:
            logger.warning(f"Simulated turn ended with error: {result.error}")

        return result


async def simulate_conversation(
    definition: Union[FlowDefinition, Dict[str, Any]],
    user_messages: Iterable[str],
    knowledge_items: Optional[Sequence[KnowledgeItem]] = None,
    persona_info: Optional[str] = None,
    reasoning_client: Optional[ReasoningClient] = None,
    settings: Optional[Settings] = None
) -> ConversationTranscript:
    """
    Run the initialization turn, then one turn per user message.

    Stops early once the flow finishes, fails or halts.
    """
    simulator = ConversationSimulator(
        definition,
        knowledge_items=knowledge_items,
        persona_info=persona_info,
        reasoning_client=reasoning_client,
        settings=settings
    )

    result = await simulator.start()

    for message in user_messages:
        if not result.is_waiting_input():
            break
        result = await simulator.send(message)

    return simulator.transcript
