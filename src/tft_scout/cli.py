"""
CLI interface using Click.
"""

import json
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from tft_scout import __version__
from tft_scout.config import ConfigurationError, load_config
from tft_scout.logging import setup_logging, get_logger
from tft_scout.models import GameState
from tft_scout.perception.ocr import RecognitionError
from tft_scout.recording import list_sessions
from tft_scout.regions import BASE_HEIGHT, BASE_WIDTH, iter_regions, scale_region
from tft_scout.replay import ReplayError, ReplayResult, SessionReplayer
from tft_scout.scout import TftScout

console = Console()
logger = get_logger(__name__)


def _print_state(title: str, state: GameState) -> None:
    console.print(Panel.fit(
        json.dumps(state.to_dict(), indent=2, ensure_ascii=False),
        title=title,
    ))


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write JSON logs here")
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool, log_file: Optional[Path]) -> None:
    """TFT Scout - read game state from the TFT window on a hotkey."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["log_file"] = log_file

    setup_logging(level="DEBUG" if verbose else "INFO", log_file=log_file)

    if version:
        console.print(f"tft-scout v{__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@main.command()
@click.option("--debug", is_flag=True, help="Save screenshots and results for replay")
@click.option("--debug-regions", is_flag=True, help="Also save preprocessed region crops (implies --debug)")
@click.option("--hotkey", default=None, help="Capture hotkey (default from config: F3)")
@click.option("--no-auto-detect", is_flag=True, help="Don't search for the game window")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
@click.pass_context
def run(
    ctx: click.Context,
    debug: bool,
    debug_regions: bool,
    hotkey: Optional[str],
    no_auto_detect: bool,
    config: Optional[str],
) -> None:
    """Listen for the hotkey and parse the game state on each press."""
    try:
        scout_config = load_config(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    if not ctx.obj.get("verbose"):
        setup_logging(level=scout_config.log_level, log_file=ctx.obj.get("log_file"))

    if debug or debug_regions:
        scout_config.debug.enabled = True
    if debug_regions:
        scout_config.debug.save_region_crops = True
    if no_auto_detect:
        scout_config.surface.auto_detect = False
    accelerator = hotkey or scout_config.hotkeys.capture

    console.print(Panel.fit(
        "[bold]TFT Scout - Game State Parser[/bold]"
        + ("\n[yellow]DEBUG MODE ENABLED[/yellow]" if scout_config.debug.enabled else "")
        + ("\nRegion crops will be saved" if scout_config.debug.save_region_crops else "")
    ))

    scout = TftScout(config=scout_config)

    try:
        scout.init()
    except Exception as e:
        console.print(f"[red]Initialization failed: {e}[/red]")
        sys.exit(1)

    def on_hotkey() -> None:
        console.print("\n[bold]Hotkey triggered![/bold] Capturing game state...")
        scout.trigger_capture(lambda state: _print_state("Game State", state))

    if not scout.register_hotkey(accelerator, on_hotkey):
        console.print(f"[red]Invalid hotkey: {accelerator}[/red]")
        scout.stop()
        sys.exit(1)

    if scout.recorder.session_dir:
        console.print(f"Recording to [cyan]{scout.recorder.session_dir}[/cyan]")
    console.print(f"\nPress [bold]{accelerator}[/bold] to capture and parse TFT game state")
    console.print("Press Ctrl+C to exit\n")

    try:
        while True:
            time.sleep(0.5)
    except KeyboardInterrupt:
        console.print("\nShutting down...")
    finally:
        scout.stop()


@main.command()
@click.argument("session_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--index", "-i", type=int, help="Replay only this capture (1-based)")
@click.option("--diff-only", is_flag=True, help="Only print captures whose result changed")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
def replay(session_path: Path, index: Optional[int], diff_only: bool, config: Optional[str]) -> None:
    """Reparse a recorded session and compare against the recorded results."""
    try:
        scout_config = load_config(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    replayer = SessionReplayer(session_path, ocr_settings=scout_config.ocr)

    try:
        manifest = replayer.open()

        console.print(f"\n[bold]Session:[/bold] {manifest.session_id}")
        console.print(f"[bold]Captures:[/bold] {len(manifest.captures)}")
        console.print(f"[bold]Game window:[/bold] {manifest.surface.width}x{manifest.surface.height}\n")

        if index is not None:
            results = [replayer.replay_by_index(index)]
        else:
            results = replayer.replay_all()
    except (ReplayError, RecognitionError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    finally:
        replayer.close()

    for result in results:
        if diff_only and result.matches:
            continue
        _print_result(result)

    _print_summary(results)


def _print_result(result: ReplayResult) -> None:
    console.rule(f"Capture {result.index}")
    _print_state("Original", result.original)
    _print_state("Reparsed", result.reparsed)
    changed = result.diff()
    if changed:
        console.print(f"[yellow]Changed:[/yellow] {', '.join(changed)}")


def _print_summary(results: list) -> None:
    table = Table(title="Replay Summary")
    table.add_column("Capture", style="cyan")
    table.add_column("Result")
    table.add_column("Changed Fields")

    for result in results:
        changed = result.diff()
        status = "[green]✓ match[/green]" if not changed else "[red]✗ changed[/red]"
        table.add_row(str(result.index), status, ", ".join(changed) or "-")

    console.print(table)
    matched = sum(1 for r in results if r.matches)
    console.print(f"\n{matched}/{len(results)} captures unchanged")


@main.command()
@click.option("--width", "-w", default=BASE_WIDTH, help="Target window width")
@click.option("--height", "-h", default=BASE_HEIGHT, help="Target window height")
def regions(width: int, height: int) -> None:
    """Show every HUD region scaled to a window size."""
    table = Table(title=f"Regions at {width}x{height}")
    table.add_column("Region", style="cyan")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Width", justify="right")
    table.add_column("Height", justify="right")

    for label, region in iter_regions():
        scaled = scale_region(region, width, height)
        x, y, w, h = scaled.to_tuple()
        table.add_row(label, str(x), str(y), str(w), str(h))

    console.print(table)

    if width * BASE_HEIGHT != height * BASE_WIDTH:
        console.print("[yellow]Warning: aspect ratio differs from 4:3, regions may be misaligned[/yellow]")


@main.command()
@click.option("--output-dir", "-o", type=click.Path(path_type=Path), help="Debug output directory")
@click.option("--config", "-c", type=click.Path(), help="Path to config file")
def sessions(output_dir: Optional[Path], config: Optional[str]) -> None:
    """List recorded debug sessions."""
    if output_dir is None:
        try:
            output_dir = load_config(config).debug.output_path
        except ConfigurationError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)

    found = list_sessions(output_dir)
    if not found:
        console.print(f"[yellow]No sessions found in {output_dir}[/yellow]")
        return

    table = Table(title=f"Sessions ({len(found)})")
    table.add_column("Session", style="cyan")
    table.add_column("Captures", justify="right")
    table.add_column("Window")
    table.add_column("Path")

    for s in found:
        if "error" in s:
            table.add_row("[red]unreadable[/red]", "-", "-", f"{s['path']} ({s['error']})")
            continue
        surface = s["surface"]
        table.add_row(
            s["session_id"],
            str(s["captures"]),
            f"{surface['width']}x{surface['height']} at ({surface['x']}, {surface['y']})",
            s["path"],
        )

    console.print(table)
    console.print("\n[dim]Use 'tft-scout replay <path>' to replay a session[/dim]")


if __name__ == "__main__":
    main()
