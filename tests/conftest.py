"""
Pytest configuration and shared fixtures for the flow engine tests.
"""
import pytest
from typing import Dict, Any, List, Optional

from agentflow.core.config import Settings
from agentflow.models.flow import KnowledgeItem
from agentflow.services.reasoning import ReasoningClient, ReasoningError


class FakeReasoningClient(ReasoningClient):
    """Scripted model: returns queued answers and records every prompt."""

    def __init__(self, answers: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.answers = list(answers or [])
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        if not self.answers:
            raise ReasoningError("No scripted answer left")
        return self.answers.pop(0)


@pytest.fixture
def engine_settings() -> Settings:
    """Settings independent of the developer's environment."""
    return Settings(
        OPENAI_API_KEY="test-key",
        FLOW_MAX_STEPS=20,
        REASONING_TIMEOUT_SECONDS=5.0,
        VALIDATE_ON_LOAD=True,
        KNOWLEDGE_FALLBACK_TEXT="No answer found.",
        _env_file=None
    )


@pytest.fixture
def fake_llm() -> FakeReasoningClient:
    return FakeReasoningClient()


@pytest.fixture
def greeting_flow() -> Dict[str, Any]:
    """start -> greet -> ask name -> thank -> end"""
    return {
        "flowId": "greeting",
        "name": "Greeting",
        "description": "Asks for the user's name",
        "nodes": [
            {"id": "start", "type": "start"},
            {"id": "greet", "type": "sendMessage", "message": "Hello! I'm the assistant."},
            {"id": "ask_name", "type": "getUserInput", "prompt": "What's your name?", "variableName": "name"},
            {"id": "thank", "type": "sendMessage", "message": "Nice to meet you, {{name}}!"},
            {"id": "end", "type": "end"}
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "greet"},
            {"id": "e2", "source": "greet", "target": "ask_name"},
            {"id": "e3", "source": "ask_name", "target": "thank", "edgeType": "default"},
            {"id": "e4", "source": "ask_name", "target": "greet", "edgeType": "invalid"},
            {"id": "e5", "source": "thank", "target": "end"}
        ]
    }


@pytest.fixture
def condition_flow() -> Dict[str, Any]:
    """Asks a yes/no question and branches on the answer."""
    return {
        "flowId": "confirm",
        "name": "Confirm",
        "description": "",
        "nodes": [
            {"id": "start", "type": "start"},
            {"id": "ask", "type": "getUserInput", "prompt": "Do you want a demo?", "variableName": "answer"},
            {"id": "check", "type": "condition", "conditionVariable": "answer"},
            {"id": "yes_msg", "type": "sendMessage", "message": "Great, booking it."},
            {"id": "no_msg", "type": "sendMessage", "message": "No problem."},
            {"id": "end", "type": "end"}
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "ask"},
            {"id": "e2", "source": "ask", "target": "check"},
            {"id": "e3", "source": "check", "target": "yes_msg", "condition": "yes"},
            {"id": "e4", "source": "check", "target": "no_msg", "condition": "no"},
            {"id": "e5", "source": "yes_msg", "target": "end"},
            {"id": "e6", "source": "no_msg", "target": "end"}
        ]
    }


@pytest.fixture
def knowledge_items() -> List[KnowledgeItem]:
    return [
        KnowledgeItem(
            id="k1",
            file_name="pricing.pdf",
            summary="The basic plan costs $10 per month.",
            keywords=["pricing", "plans"]
        ),
        KnowledgeItem(
            id="k2",
            file_name="hours.txt",
            summary="Support is available 9am to 5pm on weekdays.",
            keywords=["Opening Hours", "support"]
        )
    ]
