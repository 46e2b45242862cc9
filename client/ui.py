# client/ui.py
"""Terminal UI components for the shot clock client using rich."""

from typing import Optional

import questionary
from rich import box
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from client.state import ClockState


console = Console()

COMMAND_CHOICES = ["start", "pause", "reset"]
EXTENDED_CHOICES = ["horn", "rewind", "adjust"]
REFRESH = "refresh"
QUIT = "quit"


def clock_style(state: ClockState) -> str:
    """Colour of the clock digits."""
    if state.remaining_seconds == 0:
        return "bold red"
    if state.running:
        return "bold green"
    return "bold yellow"


def render_clock(state: ClockState, room: str = "") -> Panel:
    """Build the clock panel."""
    digits = Text(state.display_time, style=clock_style(state), justify="center")

    status = "RUNNING" if state.running else "STOPPED"
    subtitle = f"{status} | {state.role}"
    if state.horn_count:
        subtitle += f" | horns: {state.horn_count}"

    return Panel(
        Align.center(digits),
        title=f"Shot clock {room}".strip(),
        subtitle=subtitle,
        box=box.DOUBLE,
        padding=(1, 4),
    )


def print_clock(state: ClockState, room: str = ""):
    """Print the clock panel once."""
    console.print(render_clock(state, room))


def print_error(message: str):
    console.print(f"[bold red]{message}[/bold red]")


def select_command(extended: bool = False) -> Optional[str]:
    """Ask the user for the next command using arrow key selection.

    Returns:
        The command token, or None to quit.
    """
    choices = list(COMMAND_CHOICES)
    if extended:
        choices += EXTENDED_CHOICES
    choices += [REFRESH, QUIT]

    result = questionary.select(
        "Command:",
        choices=choices,
        use_indicator=True,
        use_shortcuts=False,
    ).ask()

    if result is None or result == QUIT:
        return None
    if result == "adjust":
        return ask_adjustment()
    return result


def ask_adjustment() -> str:
    """Ask how many seconds to add or remove.

    Returns:
        An adjust command, or REFRESH if the input was cancelled or not a number.
    """
    answer = questionary.text("Seconds to add (negative to remove):").ask()
    try:
        seconds = float(answer)
    except (TypeError, ValueError):
        return REFRESH
    return f"adjust;{seconds:g}"
