"""
Command dispatcher - turns one shell line into a CommandResult
"""

import logging
import shlex

from .processor import STATE_COMMANDS, CommandError, CommandProcessor
from .result import CommandResult, CommandResultType

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Routes command lines to the processor. process_command never raises."""

    def __init__(self, processor: CommandProcessor):
        self.processor = processor

    async def process_command(self, command_line: str) -> CommandResult:
        try:
            parts = shlex.split(command_line)
        except ValueError as e:
            return CommandResult.error(f"Could not parse command: {e}")
        if not parts:
            return CommandResult.error("Empty command received.")

        command = parts[0].lower()
        args = parts[1:]
        processor = self.processor

        try:
            if command == "help":
                return CommandResult.message(processor.get_help_text())
            if command == "set_api_key":
                return CommandResult.message(processor.set_api_key(args))
            if command == "ai":
                return CommandResult.ai(await processor.process_ai_command(args))
            if command in ("list", "ls"):
                return CommandResult.success(CommandResultType.NODE_LIST, processor.list_nodes())
            if command == "queue":
                return CommandResult.success(CommandResultType.TASK_LIST, processor.list_queue())
            if command == "add_node":
                return CommandResult.message(processor.add_node(args))
            if command == "add_task":
                return CommandResult.message(processor.add_task(args))
            if command == "process":
                return CommandResult.message(processor.process_tasks())
            if command == "status":
                if not args:
                    return CommandResult.error("Usage: status <node_id_or_name>")
                node = processor.get_node_status(args[0])
                return CommandResult.success(
                    CommandResultType.NODE_STATUS, {"node": node, "identifier": args[0]}
                )
            if command in STATE_COMMANDS:
                return CommandResult.message(await processor.set_node_state(command, args))
            if command == "remove":
                return CommandResult.message(await processor.remove_node(args))
            if command == "repurpose":
                return CommandResult.message(processor.repurpose_node(args))
            if command == "link":
                return CommandResult.message(processor.link_nodes(args))
            if command == "logs":
                return CommandResult.success(CommandResultType.LOG_LIST, processor.get_logs())
            if command == "clearlogs":
                return CommandResult.message(processor.clear_logs())
            if command == "exit":
                return CommandResult.message("Exit command recognized.")
        except CommandError as e:
            return CommandResult.error(str(e))
        except Exception as e:
            logger.exception(f"Internal error processing command {command_line!r}")
            return CommandResult.error(f"An internal error occurred: {e}")

        return CommandResult.error(f'Unknown command: "{command}". Type "help" for options.')
