"""
Rich rendering of command results
"""

from datetime import timedelta
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..commands.result import AiCommandResult, CommandResult, CommandResultType
from ..core.node import Node, NodeSnapshot
from ..core.task import Task, TaskSnapshot

STATE_STYLES = {
    "active": "green",
    "inactive": "yellow",
    "maintenance": "magenta",
    "decommissioned": "red",
}


def _seconds(value: float) -> str:
    return str(timedelta(seconds=int(value)))


def _task_summary(task: TaskSnapshot) -> str:
    return f"{escape(task.name)}#{task.id} ({_seconds(task.remaining_seconds)} left)"


class ResultRenderer:
    """Prints CommandResults to a rich console"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, result: CommandResult) -> None:
        if result.type == CommandResultType.NODE_LIST:
            self.render_nodes(result.data)
        elif result.type == CommandResultType.TASK_LIST:
            self.render_queue(result.data)
        elif result.type == CommandResultType.NODE_STATUS:
            self.render_status(result.data["node"], result.data["identifier"])
        elif result.type == CommandResultType.LOG_LIST:
            self.render_logs(result.data)
        elif result.type == CommandResultType.AI_RESPONSE:
            self.render_ai(result.data)
        elif result.type == CommandResultType.ERROR:
            self.console.print(f"[red]Error: {escape(result.error_message or '')}[/red]", highlight=False)
        elif result.data:
            self.console.print(result.data, markup=False, highlight=False)

    def render_nodes(self, nodes: List[Node]) -> None:
        table = Table(title=f"Nodes ({len(nodes)})", show_header=True)
        table.add_column("ID", style="yellow")
        table.add_column("Name", style="cyan")
        table.add_column("State")
        table.add_column("Class")
        table.add_column("CPU Busy/Total", justify="right")
        table.add_column("Tasks")

        for snapshot in (node.snapshot() for node in nodes):
            state = snapshot.state.value
            tasks = ", ".join(_task_summary(t) for t in snapshot.tasks)
            table.add_row(
                snapshot.id,
                escape(snapshot.name),
                f"[{STATE_STYLES[state]}]{state}[/]",
                snapshot.node_class.value,
                f"{snapshot.busy_cores}/{snapshot.cpu_cores}",
                f"{len(snapshot.tasks)}: {tasks}" if snapshot.tasks else "0",
            )

        if not nodes:
            self.console.print("No nodes found.")
        else:
            self.console.print(table)

    def render_queue(self, tasks: List[Task]) -> None:
        if not tasks:
            self.console.print("Queue is empty.")
            return

        table = Table(title=f"Task Queue ({len(tasks)})", show_header=True)
        table.add_column("Name", style="cyan")
        table.add_column("Duration", justify="right")
        table.add_column("Cores", justify="right")
        table.add_column("Class")
        for task in tasks:
            table.add_row(escape(task.name), f"{task.duration:g}s", str(task.cpu_cores), task.task_class.value)
        self.console.print(table)

    def render_status(self, node: Optional[Node], identifier: str) -> None:
        if node is None:
            self.console.print(f'[red]Node with ID or Name "{escape(identifier)}" not found.[/red]')
            return

        snapshot: NodeSnapshot = node.snapshot()
        table = Table(title=f"Status for Node {escape(snapshot.name)} (ID: {snapshot.id})", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("State", snapshot.state.value)
        table.add_row("Class", snapshot.node_class.value)
        table.add_row("CPU Cores", str(snapshot.cpu_cores))
        table.add_row("Busy Cores", str(snapshot.busy_cores))
        table.add_row("Available Cores", str(snapshot.available_cores))
        if snapshot.parent_id:
            table.add_row("Parent", snapshot.parent_id)
        if snapshot.child_ids:
            table.add_row("Children", ", ".join(snapshot.child_ids))
        table.add_row("Running Tasks", str(len(snapshot.tasks)))
        for task in snapshot.tasks:
            table.add_row("", f"{escape(task.name)} (ID: {task.id}, cores: {task.cpu_cores}, "
                              f"remaining: {_seconds(task.remaining_seconds)})")
        self.console.print(table)

        if node.logs:
            self.console.print("Recent node logs:", style="bold")
            for line in node.logs[-10:]:
                self.console.print(f"  {line}", markup=False, highlight=False)

    def render_logs(self, logs: List[str]) -> None:
        if not logs:
            self.console.print("No logs available.")
            return
        self.console.print(f"--- Orchestrator Logs ({len(logs)}) ---", style="bold")
        for line in logs:
            self.console.print(line, markup=False, highlight=False)

    def render_ai(self, ai_result: AiCommandResult) -> None:
        if ai_result.message:
            self.console.print(f"[blue]AI Message:[/blue] {escape(ai_result.message)}")
        if ai_result.answer_type == "instructions" and ai_result.instructions:
            self.console.print("AI Suggested Commands:")
            for command in ai_result.instructions:
                self.console.print(f"  - {command}", markup=False, highlight=False)
