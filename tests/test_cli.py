"""
Tests for the command line interface and result rendering
"""

import io
from unittest.mock import AsyncMock, Mock

import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console

from lads import __version__
from lads.cli.main import cli, execute_line
from lads.cli.render import ResultRenderer
from lads.commands import AiCommandResult, CommandResult
from lads.core.node import NodeState
from lads.core.task import Task


@pytest.fixture
def cleanup_tasks():
    """CLI commands own their event loop"""
    yield


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"tick_interval": 0.01}))
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


def make_renderer():
    buffer = io.StringIO()
    return ResultRenderer(Console(file=buffer, width=200, color_system=None)), buffer


class TestCli:
    """Test the click entry points"""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_exec_runs_commands(self, runner, config_file):
        result = runner.invoke(cli, [
            "--config", config_file, "exec",
            "add_node web1 4 compute",
            "add_task job 0.05 2 compute",
            "process",
            "--wait", "0.3",
        ])

        assert result.exit_code == 0, result.output
        assert 'Node "web1"' in result.output
        assert "Processed task queue: 1 of 1 tasks assigned." in result.output
        assert "0/4" in result.output

    def test_exec_reports_failures(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "exec", "add_node web1 zero"])

        assert result.exit_code == 1
        assert "Error: Invalid CPU cores value: zero" in result.output

    def test_exec_runs_seed_commands(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"tick_interval": 0.01, "seed_commands": ["add_node seeded 2"]}))

        result = runner.invoke(cli, ["--config", str(path), "exec", "ls"])

        assert result.exit_code == 0, result.output
        assert "seeded" in result.output

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.yaml"), "exec", "ls"])
        assert result.exit_code != 0

    def test_shell_session(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "shell"], input="add_node web1 2\nls\nexit\n")

        assert result.exit_code == 0, result.output
        assert "Orchestrator CLI Mode" in result.output
        assert "web1" in result.output
        assert "Exiting CLI mode." in result.output

    def test_shell_is_default_and_stops_on_eof(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file], input="help\n")

        assert result.exit_code == 0, result.output
        assert "Available Commands" in result.output
        assert "Exiting CLI mode." in result.output


class TestExecuteLine:
    """Test AI suggestion handling in the shell loop"""

    @pytest.fixture
    def dispatcher(self):
        suggestion = CommandResult.ai(AiCommandResult(
            answer_type="instructions", instructions=["add_node a 1", "ls"], message="Adding a node."
        ))
        dispatcher = Mock()
        dispatcher.process_command = AsyncMock(side_effect=[
            suggestion,
            CommandResult.message("Node added."),
            CommandResult.message("listed"),
        ])
        return dispatcher

    @pytest.mark.asyncio
    async def test_confirmed_suggestions_run(self, dispatcher):
        renderer, buffer = make_renderer()

        await execute_line(dispatcher, renderer, "ai add a node", confirm=AsyncMock(return_value=True))

        assert [call.args[0] for call in dispatcher.process_command.await_args_list] == [
            "ai add a node", "add_node a 1", "ls"
        ]
        output = buffer.getvalue()
        assert "AI Message: Adding a node." in output
        assert "Finished executing AI suggested commands." in output

    @pytest.mark.asyncio
    async def test_declined_suggestions_are_skipped(self, dispatcher):
        renderer, buffer = make_renderer()

        await execute_line(dispatcher, renderer, "ai add a node", confirm=AsyncMock(return_value=False))

        assert dispatcher.process_command.await_count == 1
        assert "Execution cancelled." in buffer.getvalue()

    @pytest.mark.asyncio
    async def test_nested_ai_suggestions_are_not_dispatched(self):
        dispatcher = Mock()
        dispatcher.process_command = AsyncMock(side_effect=[
            CommandResult.ai(AiCommandResult(
                answer_type="instructions", instructions=["ai do it again", "ls"], message=None
            )),
            CommandResult.message("listed"),
        ])
        renderer, buffer = make_renderer()

        await execute_line(dispatcher, renderer, "ai loop", confirm=AsyncMock(return_value=True))

        assert [call.args[0] for call in dispatcher.process_command.await_args_list] == ["ai loop", "ls"]
        assert "Skipping nested AI instruction: ai do it again" in buffer.getvalue()


class TestResultRenderer:
    """Test rich output of each result type"""

    @pytest.mark.asyncio
    async def test_render_nodes(self, scheduler):
        node = scheduler.create_node("web1", 4)
        scheduler.enqueue_task(Task("job", 60, 1))
        scheduler.process_queue()
        renderer, buffer = make_renderer()

        renderer.render_nodes(scheduler.nodes)

        output = buffer.getvalue()
        assert node.id in output
        assert "1/4" in output
        assert "job#1" in output

    def test_render_empty_lists(self):
        renderer, buffer = make_renderer()
        renderer.render_nodes([])
        renderer.render_queue([])
        renderer.render_logs([])

        output = buffer.getvalue()
        assert "No nodes found." in output
        assert "Queue is empty." in output
        assert "No logs available." in output

    def test_render_queue(self):
        renderer, buffer = make_renderer()
        renderer.render_queue([Task("WebReq", 5, 1)])
        assert "WebReq" in buffer.getvalue()
        assert "5s" in buffer.getvalue()

    @pytest.mark.asyncio
    async def test_render_status(self, scheduler):
        node = scheduler.create_node("db1", 8)
        await scheduler.set_node_state(node.id, NodeState.INACTIVE)
        renderer, buffer = make_renderer()

        renderer.render_status(node, "db1")
        renderer.render_status(None, "ghost")

        output = buffer.getvalue()
        assert "Status for Node db1" in output
        assert "inactive" in output
        assert 'Node with ID or Name "ghost" not found.' in output

    def test_render_logs_with_brackets(self, scheduler):
        scheduler.create_node("web1", 1)
        renderer, buffer = make_renderer()

        renderer.render_logs(scheduler.logs)
        assert "[Orchestrator] Node web1" in buffer.getvalue()

    def test_render_error(self):
        renderer, buffer = make_renderer()
        renderer.render(CommandResult.error("[Node: x] failed"))
        assert "Error: [Node: x] failed" in buffer.getvalue()
