"""
Flow Result - Data classes for node steps and whole-turn results
"""
from dataclasses import dataclass, field
from typing import Optional, Any, Dict, List
from enum import Enum

from .context import FlowContext


class StepType(str, Enum):
    """What the interpreter should do after a node ran"""
    CONTINUE = "continue"
    WAIT_INPUT = "wait_input"
    END = "end"


class TurnStatus(str, Enum):
    """How a turn ended"""
    WAITING_INPUT = "waiting_input"
    FINISHED = "finished"
    HALTED = "halted"
    ERROR = "error"
    IDLE = "idle"


@dataclass
class StepResult:
    """
    Outcome of executing one node.

    A CONTINUE step with no `next_node_id` means the node has no edge to
    follow and the flow halts.
    """

    step_type: StepType = StepType.CONTINUE
    messages: List[str] = field(default_factory=list)
    next_node_id: Optional[str] = None
    edge_id: Optional[str] = None
    note: Optional[str] = None

    @property
    def is_dead_end(self) -> bool:
        return self.step_type == StepType.CONTINUE and self.next_node_id is None


@dataclass
class FlowResult:
    """
    Result of one turn through the interpreter.

    `to_dict` renders the camelCase shape the Turn Controller relays.
    """

    updated_context: FlowContext
    messages_to_send: List[str] = field(default_factory=list)
    debug_log: List[str] = field(default_factory=list)
    next_node_id: Optional[str] = None
    error: Optional[str] = None
    is_flow_finished: bool = False
    status: TurnStatus = TurnStatus.IDLE

    def is_success(self) -> bool:
        return self.error is None

    def is_waiting_input(self) -> bool:
        return self.status == TurnStatus.WAITING_INPUT

    def is_halted(self) -> bool:
        return self.status == TurnStatus.HALTED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "messagesToSend": list(self.messages_to_send),
            "debugLog": list(self.debug_log),
            "updatedContext": self.updated_context.to_dict(),
            "isFlowFinished": self.is_flow_finished,
            "status": self.status.value,
        }
        if self.next_node_id is not None:
            data["nextNodeId"] = self.next_node_id
        if self.error is not None:
            data["error"] = self.error
        return data

    def __str__(self) -> str:
        state = "OK" if self.is_success() else f"ERROR: {self.error}"
        return (
            f"FlowResult({self.status.value}, messages={len(self.messages_to_send)}, "
            f"next={self.next_node_id}, status={state})"
        )


# Factory functions for common steps

def message_step(messages: List[str], next_node_id: Optional[str], edge_id: Optional[str] = None) -> StepResult:
    """Emit messages and move on"""
    return StepResult(
        step_type=StepType.CONTINUE,
        messages=messages,
        next_node_id=next_node_id,
        edge_id=edge_id
    )


def continue_step(
    next_node_id: Optional[str],
    edge_id: Optional[str] = None,
    note: Optional[str] = None
) -> StepResult:
    """Move on without output"""
    return StepResult(
        step_type=StepType.CONTINUE,
        next_node_id=next_node_id,
        edge_id=edge_id,
        note=note
    )


def wait_input_step(messages: Optional[List[str]] = None, note: Optional[str] = None) -> StepResult:
    """Suspend the turn until the next user message"""
    return StepResult(
        step_type=StepType.WAIT_INPUT,
        messages=messages or [],
        note=note
    )


def end_step(note: Optional[str] = None) -> StepResult:
    """Terminate the flow"""
    return StepResult(step_type=StepType.END, note=note)
