"""
Command processor - implements the shell verbs on top of a Scheduler
"""

import logging
from typing import List, Optional, Tuple

from ..core.errors import InvalidArgumentError, LadsError, NotFoundError
from ..core.node import Node, NodeState
from ..core.scheduler import Scheduler
from ..core.task import NodeClass, Task
from ..services.ai import AiServiceError, GeminiService
from .result import AiCommandResult

logger = logging.getLogger(__name__)

CLASS_NAMES = ", ".join(c.value for c in NodeClass)

COMMANDS_HELP = [
    ("help", "Show this help message"),
    ("set_api_key <key>", "Set the Gemini API Key for the current session"),
    ("ai <instruction>", "Ask the AI to perform tasks (e.g., ai create a db server)"),
    ("list / ls", "List all nodes and their status"),
    ("queue", "List tasks waiting in the queue"),
    ("add_node <name> <cores> [class]", "Add a new node (e.g., add_node MyNode 8 compute)"),
    ("add_task <name> <secs> <cores> [class]", "Add a task (e.g., add_task WebReq 5 1 compute)"),
    ("process", "Attempt to assign tasks from the queue to nodes"),
    ("status <node_id_or_name>", "Show detailed status of a specific node"),
    ("active <node_id>", "Set node state to active"),
    ("inactive <node_id>", "Set node state to inactive (waits for tasks)"),
    ("maintain <node_id>", "Set node state to maintenance (waits for tasks)"),
    ("decom <node_id>", "Set node state to decommissioned (waits for tasks)"),
    ("remove <node_id> [force]", "Remove a decommissioned node (or attempt decom first)"),
    ("repurpose <node_id> <class> [hierarchical]", "Change class (e.g., repurpose XF34 database)"),
    ("link <parent_id> <child_id>", "Attach a node under another for hierarchical repurpose"),
    ("logs", "Show all orchestrator logs"),
    ("clearlogs", "Clear all orchestrator logs"),
    ("exit", "Exit the shell"),
]

STATE_COMMANDS = {
    "active": NodeState.ACTIVE,
    "inactive": NodeState.INACTIVE,
    "maintain": NodeState.MAINTENANCE,
    "decom": NodeState.DECOMMISSIONED,
}


def _format_commands() -> str:
    width = max(len(usage) for usage, _ in COMMANDS_HELP)
    return "\n".join(f"{usage.ljust(width)} - {text}" for usage, text in COMMANDS_HELP)


SYSTEM_PROMPT = f"""
You are an assistant for a command-line orchestrator tool. You assist transforming natural language demands into custom machine specific commands.
Here are the available commands you can use:
--- AVAILABLE COMMANDS ---
{_format_commands()}
--- END AVAILABLE COMMANDS ---
Node Classes: {CLASS_NAMES}

Based on the user's request and the available commands, generate a sequence of commands to achieve the goal.
Follow the response schema precisely.
Example response for "add a compute node named web1 with 4 cores":
{{ "answer_type": "instructions", "instructions": ["add_node web1 4 compute"], "message": "Okay, adding compute node web1." }}
Example response for "add a db node db1 with 8 cores then list nodes":
{{ "answer_type": "instructions", "instructions": ["add_node db1 8 database", "list"], "message": null }}
Example response for "what is a node?":
{{ "answer_type": "message", "instructions": null, "message": "A node represents a virtual machine in the simulated environment that can run tasks." }}

- Return *only* a valid JSON object matching the schema.
- Never return an empty instructions array if answer_type is "instructions". If no commands are applicable, use answer_type "message".
- Always try to fulfill the request using the available commands, even if it requires multiple steps.
- Always be brief in your message answers.
- You can send messages to the user to advise, inform about limitations, clarify conflicts or ask direct questions.
- When the user prepends their request with "f:", provide instructions with no message (set message to null).
- Your JSON response must be exactly as specified, with no markdown.
"""


class CommandError(LadsError):
    """Raised for malformed or rejected shell commands"""
    pass


def _parse_class(value: str, kind: str) -> Tuple[NodeClass, Optional[str]]:
    """Unknown class names fall back to generic with a warning"""
    try:
        return NodeClass.parse(value), None
    except InvalidArgumentError:
        return NodeClass.GENERIC, f'Warning: Invalid {kind} class "{value}". Using generic.'


class CommandProcessor:
    """Implements each shell command against the scheduler and AI service"""

    def __init__(self, scheduler: Scheduler, ai_service: GeminiService):
        self.scheduler = scheduler
        self.ai_service = ai_service

    def get_help_text(self) -> str:
        return f"\nAvailable Commands:\n{_format_commands()}\n\nNode Classes: {CLASS_NAMES}"

    def set_api_key(self, args: List[str]) -> str:
        if not args:
            raise CommandError("Usage: set_api_key <your_gemini_api_key>")
        self.ai_service.set_api_key(args[0])
        return "Gemini API Key has been set for this session."

    def list_nodes(self) -> List[Node]:
        return self.scheduler.nodes

    def list_queue(self) -> List[Task]:
        return self.scheduler.queue

    def add_node(self, args: List[str]) -> str:
        if len(args) < 2:
            raise CommandError("Usage: add_node <name> <cpu_cores> [class]")
        name = args[0]
        try:
            cores = int(args[1])
        except ValueError:
            raise CommandError(f"Invalid CPU cores value: {args[1]}") from None

        node_class, warning = _parse_class(args[2], "node") if len(args) > 2 else (NodeClass.GENERIC, None)
        try:
            node = self.scheduler.create_node(name, cores, node_class)
        except InvalidArgumentError as e:
            raise CommandError(f"Error adding node: {e}") from e

        result = f'Node "{name}" (ID: {node.id}, class: {node_class.value}) added.'
        if warning:
            result += f"\n{warning}"
        return result

    def add_task(self, args: List[str]) -> str:
        if len(args) < 3:
            raise CommandError("Usage: add_task <name> <duration_seconds> <cpu_cores> [class]")
        name = args[0]
        try:
            duration = float(args[1])
            cores = int(args[2])
        except ValueError:
            raise CommandError("Invalid duration or CPU cores value.") from None

        task_class, warning = _parse_class(args[3], "task") if len(args) > 3 else (NodeClass.GENERIC, None)
        try:
            self.scheduler.enqueue_task(Task(name, duration, cores, task_class=task_class))
        except InvalidArgumentError as e:
            raise CommandError(f"Error adding task: {e}") from e

        result = f'Task "{name}" added to queue.'
        if warning:
            result += f"\n{warning}"
        return result

    def process_tasks(self) -> str:
        queued = len(self.scheduler.queue)
        assigned = self.scheduler.process_queue()
        return f"Processed task queue: {len(assigned)} of {queued} tasks assigned."

    def get_node_status(self, identifier: str) -> Optional[Node]:
        return self.scheduler.find_node(identifier)

    async def set_node_state(self, command: str, args: List[str]) -> str:
        if not args:
            raise CommandError(f"Usage: {command} <node_id>")
        target = STATE_COMMANDS.get(command)
        if target is None:
            raise CommandError(f"Invalid state command: {command}")

        node = self.scheduler.find_node(args[0])
        if node is None:
            raise CommandError(str(NotFoundError(args[0])))

        lines = await self.scheduler.set_node_state(node.id, target)
        return "\n".join(lines)

    async def remove_node(self, args: List[str]) -> str:
        if not args:
            raise CommandError("Usage: remove <node_id> [force]")
        force = len(args) > 1 and args[1].lower() == "force"

        node = self.scheduler.find_node(args[0])
        if node is None:
            raise CommandError(str(NotFoundError(args[0])))

        if not await self.scheduler.remove_node(node.id, force=force):
            raise CommandError(f"Node {node.name} ({node.id}) could not be removed. Check logs for details.")
        return f"Node {node.name} ({node.id}) removed."

    def repurpose_node(self, args: List[str]) -> str:
        if len(args) < 2:
            raise CommandError("Usage: repurpose <node_id> <new_class> [hierarchical]")
        try:
            new_class = NodeClass.parse(args[1])
        except InvalidArgumentError as e:
            raise CommandError(str(e)) from None
        hierarchical = len(args) > 2 and args[2].lower() in ("hierarchical", "h", "-r")

        node = self.scheduler.find_node(args[0])
        if node is None:
            raise CommandError(str(NotFoundError(args[0])))

        return "\n".join(self.scheduler.repurpose_node(node.id, new_class, hierarchical))

    def link_nodes(self, args: List[str]) -> str:
        if len(args) < 2:
            raise CommandError("Usage: link <parent_id> <child_id>")
        try:
            self.scheduler.link_nodes(args[0], args[1])
        except (NotFoundError, InvalidArgumentError) as e:
            raise CommandError(str(e)) from e
        return f"Node {args[1]} linked under {args[0]}."

    def get_logs(self) -> List[str]:
        return self.scheduler.logs

    def clear_logs(self) -> str:
        self.scheduler.clear_logs()
        return "Logs cleared."

    async def process_ai_command(self, args: List[str]) -> AiCommandResult:
        """Ask the translator for commands; failures come back as messages"""
        if not self.ai_service.is_api_key_set():
            return AiCommandResult(
                answer_type="message", message="AI API Key not set. Please use: set_api_key <your_key>"
            )
        if not args:
            return AiCommandResult(answer_type="message", message="Usage: ai <your instruction for the ai>")

        try:
            reply = await self.ai_service.generate_structured_content(" ".join(args), SYSTEM_PROMPT)
        except AiServiceError as e:
            return AiCommandResult(answer_type="message", message=f"Error interacting with AI service: {e}")

        if reply.get("answer_type") == "instructions":
            result = AiCommandResult(
                answer_type="instructions",
                instructions=[str(item) for item in reply.get("instructions") or []],
                message=reply.get("message"),
            )
            if not result.instructions:
                return AiCommandResult(answer_type="message", message="AI indicated instructions but provided none.")
            return result

        return AiCommandResult(
            answer_type="message",
            message=reply.get("message") or "AI returned a message response with no content.",
        )
