"""
Console runner - chat with a flow definition from the terminal

Usage:
    python main.py path/to/flow.json [--knowledge path/to/knowledge.json] [--persona "..."]
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Callable, Optional, List

from agentflow.core.config import settings
from agentflow.flow.simulator import ConversationSimulator
from agentflow.flow.result import FlowResult
from agentflow.models.flow import FlowDefinition, KnowledgeItem

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def _print_turn(result: FlowResult, show_debug: bool) -> None:
    for message in result.messages_to_send:
        print(f"Agent: {message}")
    if show_debug:
        for line in result.debug_log:
            print(f"  [debug] {line}")
    if result.error:
        print(f"  [error] {result.error}")


async def run_console(
    definition: FlowDefinition,
    knowledge_items: Optional[List[KnowledgeItem]] = None,
    persona_info: Optional[str] = None,
    show_debug: bool = False,
    read_input: Callable[[str], str] = input
) -> int:
    """Interactive loop; returns a process exit code"""
    simulator = ConversationSimulator(
        definition,
        knowledge_items=knowledge_items,
        persona_info=persona_info
    )

    result = await simulator.start()
    _print_turn(result, show_debug)

    while result.is_waiting_input():
        try:
            user_message = read_input("You: ")
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        result = await simulator.send(user_message)
        _print_turn(result, show_debug)

    if result.is_flow_finished:
        print("-- conversation finished --")
    elif result.is_halted():
        print("-- flow halted: no edge to follow --")

    return 1 if result.error else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with an agent flow definition")
    parser.add_argument("flow", help="Flow definition JSON file")
    parser.add_argument("--knowledge", help="JSON file with a list of knowledge items")
    parser.add_argument("--persona", help="Persona text prepended to model prompts")
    parser.add_argument("--debug", action="store_true", help="Print the interpreter debug log")
    args = parser.parse_args(argv)

    with open(args.flow, encoding="utf-8") as f:
        definition = FlowDefinition.model_validate(json.load(f))

    knowledge_items = None
    if args.knowledge:
        with open(args.knowledge, encoding="utf-8") as f:
            knowledge_items = [KnowledgeItem.model_validate(item) for item in json.load(f)]

    return asyncio.run(run_console(definition, knowledge_items, args.persona, args.debug))


if __name__ == "__main__":
    sys.exit(main())
