"""Terminal review loop for a staged import (prompt_toolkit-based).

The loop is a thin command interpreter over :class:`ImportSession`; all state
changes go through the session so the same rules apply as for programmatic
callers. Row numbers shown by ``list`` are 1-based.

Commands
--------
``list``                show the staged rows
``toggle N``            flip selection of row N
``all`` / ``none``      select or deselect every row
``cat N NAME``          set the category of row N (from its direction's list)
``desc N TEXT``         set the description of row N
``date N DATE``         set the date of row N
``unit N NAME``         set the unit of row N
``bulk NAME``           set catalogue category NAME on every selected row
``ai``                  start classifying descriptions in the background
``ai status``           show whether the AI result has arrived
``ai apply``            wait for the AI result and merge it
``commit`` / ``cancel`` finish the review
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter

from .categorize import AiClassifier
from .models import Direction, StagingItem
from .session import ImportSession

COMMANDS: tuple[str, ...] = (
    "list",
    "toggle",
    "all",
    "none",
    "cat",
    "desc",
    "date",
    "unit",
    "bulk",
    "ai",
    "commit",
    "cancel",
    "help",
)

_FIELD_COMMANDS = {"cat": "category", "desc": "description", "date": "date", "unit": "unit"}


def format_item(position: int, item: StagingItem) -> str:
    mark = "x" if item.selected else " "
    sign = "+" if item.direction == Direction.INFLOW else "-"
    unit = f" @{item.unit}" if item.unit else ""
    return (
        f"{position:>3} [{mark}] {item.date} {sign}{item.amount} "
        f"{item.category}{unit} | {item.description}"
    )


def render_items(items: Sequence[StagingItem]) -> list[str]:
    if not items:
        return ["(no staged rows)"]
    lines = [format_item(i, item) for i, item in enumerate(items, start=1)]
    selected = sum(1 for i in items if i.selected)
    lines.append(f"{selected} of {len(items)} selected")
    return lines


def _row_item(session: ImportSession, token: str) -> StagingItem | None:
    try:
        pos = int(token)
    except ValueError:
        return None
    items = session.items
    if 1 <= pos <= len(items):
        return items[pos - 1]
    return None


def _ai_command(
    session: ImportSession,
    action: str,
    *,
    classifier: AiClassifier | None,
    protect_manual_edits: bool,
    echo: Callable[[str], None],
) -> None:
    if action in ("", "start"):
        if classifier is None:
            echo("AI classification is not configured.")
            return
        session.start_ai_classification(classifier)
        echo("AI classification started; keep editing and run 'ai apply' to merge.")
        return

    task = session.ai_task
    if action == "status":
        if task is None:
            echo("No AI classification started.")
        else:
            echo(f"AI classification {task.status}.")
    elif action == "apply":
        if task is None:
            echo("No AI classification to apply.")
            return
        if not task.done():
            echo("Waiting for AI results...")
        outcome = session.apply_ai_result(task, protect_manual_edits=protect_manual_edits)
        echo(outcome.failure or f"AI updated {outcome.applied} row(s).")
    else:
        echo(f"Unknown ai action: {action} (use start, status or apply)")


def review_staging(
    session: ImportSession,
    *,
    prompt_session: PromptSession | None = None,
    classifier: AiClassifier | None = None,
    protect_manual_edits: bool = False,
    echo: Callable[[str], None] = print,
    message: str = "review> ",
) -> bool:
    """Run the review loop; returns True on ``commit`` and False on ``cancel``.

    End of input and Ctrl+C count as ``cancel``. The session itself is not
    closed here; the caller commits or cancels it.
    """

    words = list(COMMANDS) + session.catalogue.combined() + list(session.units)
    completer = WordCompleter(words, ignore_case=True, sentence=True)
    if prompt_session is None:
        sess: PromptSession = PromptSession()
    else:
        sess = PromptSession(
            input=getattr(prompt_session, "input", None),
            output=getattr(prompt_session, "output", None),
        )

    for line in render_items(session.items):
        echo(line)

    while True:
        try:
            raw = sess.prompt(message, completer=completer, complete_while_typing=False)
        except (EOFError, KeyboardInterrupt):
            return False

        parts = raw.strip().split(maxsplit=2)
        if not parts:
            continue
        cmd = parts[0].lower()

        if cmd == "commit":
            return True
        if cmd == "cancel":
            return False
        if cmd == "list":
            for line in render_items(session.items):
                echo(line)
        elif cmd == "help":
            echo("commands: " + ", ".join(COMMANDS))
        elif cmd in ("all", "none"):
            session.select_all(cmd == "all")
        elif cmd == "toggle" and len(parts) >= 2:
            item = _row_item(session, parts[1])
            if item is None:
                echo(f"No row {parts[1]}")
                continue
            session.toggle_selection(item.id)
        elif cmd in _FIELD_COMMANDS and len(parts) == 3:
            item = _row_item(session, parts[1])
            if item is None:
                echo(f"No row {parts[1]}")
                continue
            value = parts[2].strip()
            if cmd == "cat":
                name = session.category_for(value, item.direction)
                if name is None:
                    echo(f"Unknown category: {value}")
                    continue
                value = name
            session.update_field(item.id, _FIELD_COMMANDS[cmd], value)
        elif cmd == "bulk" and len(parts) >= 2:
            requested = raw.strip()[len(parts[0]) :].strip()
            name = session.category_for(requested)
            if name is None:
                echo(f"Unknown category: {requested}")
                continue
            changed = session.bulk_apply_category(name)
            echo(f"Applied '{name}' to {changed} row(s).")
        elif cmd == "ai":
            _ai_command(
                session,
                parts[1].lower() if len(parts) > 1 else "",
                classifier=classifier,
                protect_manual_edits=protect_manual_edits,
                echo=echo,
            )
        else:
            echo(f"Unknown command: {raw.strip()} (type 'help')")


__all__ = ["COMMANDS", "format_item", "render_items", "review_staging"]
