"""
Terminal stand-ins for the folder and file pickers.

Both return None when the user gives no usable answer, which callers treat as
"cancelled" rather than as an error.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

import typer
from rich.markup import escape

log = logging.getLogger(__name__)

TORRENT_FILTERS = (".torrent",)


def _prompt(text: str, default: str = "") -> str | None:
    try:
        answer = typer.prompt(text, default=default, show_default=bool(default))
    except typer.Abort:
        return None
    answer = str(answer).strip()
    return answer or None


async def pick_directory(default: str = "", title: str = "Output folder") -> str | None:
    """Asks for an existing directory; returns its absolute path or None."""
    answer = await asyncio.to_thread(_prompt, title, default)
    if answer is None:
        return None
    path = Path(answer).expanduser()
    if not path.is_dir():
        log.warning(f"[yellow]Not a directory: {escape(answer)}[/yellow]")
        return None
    return str(path.resolve())


async def pick_file(
    filters: Sequence[str] = TORRENT_FILTERS, title: str = "Metainfo file"
) -> str | None:
    """Asks for an existing file whose suffix is in `filters`; returns its path or None."""
    answer = await asyncio.to_thread(_prompt, title)
    if answer is None:
        return None
    path = Path(answer).expanduser()
    if not path.is_file():
        log.warning(f"[yellow]No such file: {escape(answer)}[/yellow]")
        return None
    if filters and path.suffix.lower() not in filters:
        log.warning(
            f"[yellow]Expected a {' or '.join(filters)} file, got: "
            f"{escape(path.name)}[/yellow]"
        )
        return None
    return str(path.resolve())
