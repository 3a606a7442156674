import contextlib
import threading
from decimal import Decimal

import ledger_import.categorize as categorize_mod
from ledger_import.categorize import AiClassifier
from ledger_import.models import Direction, StagingItem
from ledger_import.session import ImportSession
from ledger_import.term_ui import render_items, review_staging
from tests.helpers.openai_stub import OpenAIStub

# Compatibility import across prompt_toolkit versions
try:  # pragma: no cover - fallback path depends on library version
    from prompt_toolkit.input import create_pipe_input
except ImportError:  # pragma: no cover
    from prompt_toolkit.input.defaults import create_pipe_input

from prompt_toolkit import PromptSession
from prompt_toolkit.output import DummyOutput


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def _session(catalogue) -> ImportSession:
    items = [
        StagingItem(
            id=f"s{i}",
            date="2024-01-0" + str(i + 1),
            amount=Decimal("10.00"),
            description=desc,
            direction=Direction.OUTFLOW,
            category="Outros",
            unit="Mirella Doces",
        )
        for i, desc in enumerate(["ENEL SP", "PADARIA", "LOGGI"])
    ]
    return ImportSession(items, catalogue=catalogue, units=["Mirella Doces", "Filial"])


def test_commit_after_edits(catalogue):
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text(
            "toggle 2\r"
            "cat 3 Frete\r"
            "desc 1 ENEL DISTRIBUICAO\r"
            "unit 3 Filial\r"
            "date 1 2024-02-01\r"
            "commit\r"
        )
        accepted = review_staging(session, prompt_session=sess, echo=lines.append)

    assert accepted is True
    items = session.items
    assert [i.selected for i in items] == [True, False, True]
    assert (items[2].category, items[2].unit, items[2].edited) == ("Frete", "Filial", True)
    assert (items[0].description, items[0].date) == ("ENEL DISTRIBUICAO", "2024-02-01")
    assert not session.closed


def test_bulk_on_selection_then_cancel(catalogue):
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("none\rtoggle 1\rtoggle 3\rbulk Insumos Gerais\rcancel\r")
        accepted = review_staging(session, prompt_session=sess, echo=lines.append)

    assert accepted is False
    assert [i.category for i in session.items] == ["Insumos Gerais", "Outros", "Insumos Gerais"]
    assert "Applied 'Insumos Gerais' to 2 row(s)." in lines


def test_unknown_rows_and_commands_are_reported(catalogue):
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("toggle 9\rfrobnicate\rai\rcommit\r")
        review_staging(session, prompt_session=sess, echo=lines.append)

    assert "No row 9" in lines
    assert any(line.startswith("Unknown command: frobnicate") for line in lines)
    assert "AI classification is not configured." in lines
    assert all(i.selected for i in session.items)


def test_end_of_input_counts_as_cancel(catalogue):
    session = _session(catalogue)
    with pipe_session() as (pipe, sess):
        pipe.send_text("all\r\x04")  # Ctrl-D on an empty line
        assert review_staging(session, prompt_session=sess, echo=lambda s: None) is False


def test_ai_command_merges_results(monkeypatch, catalogue):
    stub = OpenAIStub(lambda d: "Energia" if d == "ENEL SP" else None)
    monkeypatch.setattr(categorize_mod, "OpenAI", stub.factory)
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("ai\rai apply\rcommit\r")
        review_staging(session, prompt_session=sess, classifier=AiClassifier(), echo=lines.append)

    assert session.items[0].category == "Energia"
    assert "AI updated 1 row(s)." in lines


def test_render_items_marks_selection_and_direction(catalogue):
    session = _session(catalogue)
    session.toggle_selection("s1")
    lines = render_items(session.items)
    assert lines[0].startswith("  1 [x] 2024-01-01 -10.00 Outros @Mirella Doces | ENEL SP")
    assert "[ ]" in lines[1]
    assert lines[-1] == "2 of 3 selected"


def test_cat_only_accepts_the_rows_direction_list(catalogue):
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("cat 1 Typo\rcat 2 Vendas Loja\rcat 3 insumos gerais\rcommit\r")
        assert review_staging(session, prompt_session=sess, echo=lines.append) is True

    assert "Unknown category: Typo" in lines
    assert "Unknown category: Vendas Loja" in lines
    assert [i.category for i in session.items] == ["Outros", "Outros", "Insumos Gerais"]
    assert [i.edited for i in session.items] == [False, False, True]

    entries = session.commit()
    assert {e.category for e in entries} <= set(catalogue.outflow)


def test_bulk_rejects_names_outside_the_catalogue(catalogue):
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("bulk Insumos Gerias\rbulk energia\rcancel\r")
        review_staging(session, prompt_session=sess, echo=lines.append)

    assert "Unknown category: Insumos Gerias" in lines
    assert "Applied 'Energia' to 3 row(s)." in lines
    assert [i.category for i in session.items] == ["Energia"] * 3


def test_ai_runs_in_background_while_rows_stay_editable(monkeypatch, catalogue):
    release = threading.Event()

    def decide(description: str) -> str | None:
        release.wait(timeout=5)
        return {"ENEL SP": "Energia", "LOGGI": "Frete"}.get(description)

    stub = OpenAIStub(decide)
    monkeypatch.setattr(categorize_mod, "OpenAI", stub.factory)
    session = _session(catalogue)
    lines: list[str] = []

    def echo(line: str) -> None:
        lines.append(line)
        if line == "AI classification pending.":
            release.set()

    with pipe_session() as (pipe, sess):
        pipe.send_text("ai\rai status\rcat 2 Frete\rai apply\rai status\rcommit\r")
        review_staging(session, prompt_session=sess, classifier=AiClassifier(), echo=echo)

    assert "AI classification pending." in lines
    assert "AI updated 2 row(s)." in lines
    assert lines[-1] == "No AI classification started."
    assert [i.category for i in session.items] == ["Energia", "Frete", "Frete"]
    assert session.ai_task is None


def test_ai_status_and_apply_without_a_task(catalogue):
    session = _session(catalogue)
    lines: list[str] = []
    with pipe_session() as (pipe, sess):
        pipe.send_text("ai status\rai apply\rai later\rcancel\r")
        review_staging(session, prompt_session=sess, echo=lines.append)

    assert lines[-3:] == [
        "No AI classification started.",
        "No AI classification to apply.",
        "Unknown ai action: later (use start, status or apply)",
    ]
