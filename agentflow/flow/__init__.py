"""
Flow Module - Conversational flow execution

This module provides:
- FlowInterpreter: turn-by-turn state machine over a flow definition
- EdgeResolver: deterministic branch selection
- Template rendering for {{variable}} placeholders
- Knowledge lookup over an agent's knowledge items
- Flow validation and an in-memory conversation simulator
"""

from .executor import FlowInterpreter, execute_agent_flow, create_flow_interpreter
from .edges import EdgeResolver
from .template import render_template
from .knowledge import KnowledgeMatcher, build_knowledge_block
from .validator import FlowValidator, FlowValidationError, validate_flow
from .context import FlowContext, create_context
from .result import FlowResult, StepResult, StepType, TurnStatus
from .simulator import ConversationSimulator, ConversationTranscript, simulate_conversation

__all__ = [
    # Interpreter
    "FlowInterpreter",
    "execute_agent_flow",
    "create_flow_interpreter",

    # Collaborators
    "EdgeResolver",
    "render_template",
    "KnowledgeMatcher",
    "build_knowledge_block",

    # Validator
    "FlowValidator",
    "FlowValidationError",
    "validate_flow",

    # Context
    "FlowContext",
    "create_context",

    # Results
    "FlowResult",
    "StepResult",
    "StepType",
    "TurnStatus",

    # Simulator
    "ConversationSimulator",
    "ConversationTranscript",
    "simulate_conversation",
]
