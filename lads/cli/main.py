"""
LADS command line interface

Interactive shell and non-interactive command execution for the simulated
node pool.
"""

import asyncio
import functools
import logging
import sys
from typing import Awaitable, Callable, Optional, Tuple

import click
from rich.console import Console
from rich.prompt import Confirm

from .. import __version__
from ..commands import CommandDispatcher, CommandProcessor, CommandResult, CommandResultType
from ..config import LadsConfig, load_config, setup_logging
from ..core.scheduler import Scheduler
from ..services.ai import GeminiService
from .render import ResultRenderer

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[], Awaitable[bool]]


def build_runtime(config: LadsConfig) -> Tuple[Scheduler, GeminiService, CommandDispatcher]:
    """Wire a scheduler, translator and dispatcher from configuration"""
    scheduler = Scheduler(config)
    ai_service = GeminiService(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        base_url=config.gemini_base_url,
        timeout=config.ai_timeout,
    )
    dispatcher = CommandDispatcher(CommandProcessor(scheduler, ai_service))
    return scheduler, ai_service, dispatcher


async def execute_line(
    dispatcher: CommandDispatcher,
    renderer: ResultRenderer,
    line: str,
    confirm: Optional[ConfirmCallback] = None,
) -> CommandResult:
    """Run one command line, render it, and run AI suggestions once confirmed"""
    result = await dispatcher.process_command(line)
    renderer.render(result)

    if result.type != CommandResultType.AI_RESPONSE:
        return result
    ai_result = result.data
    if ai_result.answer_type != "instructions" or not ai_result.instructions:
        return result

    if confirm is None or not await confirm():
        renderer.console.print("Execution cancelled.")
        return result

    renderer.console.print("Executing AI suggested commands...")
    for command in ai_result.instructions:
        # Suggestions never start another translator round trip
        if command.strip().split(" ", 1)[0].lower() == "ai":
            renderer.console.print(f"\nSkipping nested AI instruction: {command}", markup=False, highlight=False)
            continue
        renderer.console.print(f"\nExecuting: {command}", markup=False, highlight=False)
        await execute_line(dispatcher, renderer, command, confirm)
    renderer.console.print("Finished executing AI suggested commands.")
    return result


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='Path to config file (default: ~/.lads/config.yaml)')
@click.version_option(version=__version__, prog_name='LADS')
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool, config_path: Optional[str]):
    """
    LADS - Simulated compute node pool

    Create nodes, queue tasks, drain and repurpose nodes from a shell.
    """
    config = load_config(config_path)

    # Configure logging based on verbosity
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    elif verbose:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s'
        )
    else:
        setup_logging(config)

    ctx.obj = config
    if ctx.invoked_subcommand is None:
        ctx.invoke(shell)


@cli.command()
@click.pass_obj
def shell(config: LadsConfig):
    """Start the interactive shell (default)"""
    asyncio.run(_run_shell(config))


async def _run_shell(config: LadsConfig):
    console = Console()
    renderer = ResultRenderer(console)
    scheduler, ai_service, dispatcher = build_runtime(config)

    async def confirm() -> bool:
        ask = functools.partial(Confirm.ask, "Execute these commands?", console=console)
        return await asyncio.get_running_loop().run_in_executor(None, ask)

    await scheduler.start()
    try:
        for line in config.seed_commands:
            await execute_line(dispatcher, renderer, line, confirm)

        console.print("\n--- Orchestrator CLI Mode ---", style="bold")
        console.print('Type "help" for commands, "exit" to quit.')
        console.print('Use "set_api_key <your_key>" to set the AI API Key.')

        while True:
            # Read off the loop so task countdowns keep running
            try:
                line = await asyncio.get_running_loop().run_in_executor(None, console.input, "\n> ")
            except EOFError:
                console.print("\nExiting CLI mode.")
                break

            line = line.strip()
            if not line:
                continue
            if line.lower() == "exit":
                console.print("Exiting CLI mode.")
                break
            await execute_line(dispatcher, renderer, line, confirm)
    finally:
        await scheduler.stop()
        await ai_service.shutdown()


@cli.command(name='exec')
@click.argument('commands', nargs=-1, required=True)
@click.option('--wait', type=float, default=0.0, show_default=True,
              help='Seconds to let tasks run before printing the final node table')
@click.option('--yes', '-y', is_flag=True, help='Execute AI suggested commands without asking')
@click.pass_obj
def exec_commands(config: LadsConfig, commands: Tuple[str, ...], wait: float, yes: bool):
    """Run shell COMMANDS non-interactively, one quoted line each"""
    failures = asyncio.run(_run_commands(config, commands, wait, yes))
    if failures:
        sys.exit(1)


async def _run_commands(config: LadsConfig, commands: Tuple[str, ...], wait: float, yes: bool) -> int:
    renderer = ResultRenderer(Console())
    scheduler, ai_service, dispatcher = build_runtime(config)

    async def confirm() -> bool:
        return yes

    failures = 0
    await scheduler.start()
    try:
        for line in list(config.seed_commands) + list(commands):
            if line.strip().lower() == "exit":
                break
            result = await execute_line(dispatcher, renderer, line, confirm)
            if result.is_error:
                failures += 1

        if wait > 0:
            await asyncio.sleep(wait)
        renderer.render_nodes(scheduler.nodes)
    finally:
        await scheduler.stop()
        await ai_service.shutdown()
    return failures


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        click.echo(f"Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
