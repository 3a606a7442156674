"""Ingest utilities shared by CLI commands and workflows.

Bank exports are frequently cp1252 (OFX 1.x ``CHARSET:1252``) even when
nothing says so, so decoding honours an explicit declaration first, then tries
UTF-8, then falls back to cp1252.
"""

from __future__ import annotations

import codecs
import logging
import re
from os import PathLike
from pathlib import Path

from ..logging_setup import get_logger, log_event

_HEADER_SCAN_BYTES = 1024

# OFX 1.x SGML header lines and the XML prolog of OFX 2.x.
_CHARSET_RE = re.compile(rb"^\s*CHARSET\s*:\s*([A-Za-z0-9_-]+)", re.MULTILINE)
_ENCODING_RE = re.compile(rb"^\s*ENCODING\s*:\s*([A-Za-z0-9_-]+)", re.MULTILINE)
_XML_ENCODING_RE = re.compile(rb"<\?xml[^>]*encoding=[\"']([A-Za-z0-9_-]+)[\"']")

_logger = get_logger("ledger_import.ingest.utils")


def _declared_encoding(head: bytes) -> str | None:
    xml = _XML_ENCODING_RE.search(head)
    if xml:
        return xml.group(1).decode("ascii")
    charset = _CHARSET_RE.search(head)
    if charset:
        value = charset.group(1).decode("ascii")
        if value.isdigit():
            return f"cp{value}"
        if value.upper() not in {"NONE", "USASCII"}:
            return value
    encoding = _ENCODING_RE.search(head)
    if encoding:
        value = encoding.group(1).decode("ascii")
        if value.upper() == "UTF-8":
            return "utf-8"
    return None


def _known_codec(name: str) -> bool:
    try:
        codecs.lookup(name)
    except LookupError:
        return False
    return True


def decode_statement(payload: bytes) -> str:
    """Decode raw statement bytes to text without ever raising."""

    if payload.startswith(codecs.BOM_UTF8):
        return payload[len(codecs.BOM_UTF8) :].decode("utf-8", errors="replace")

    declared = _declared_encoding(payload[:_HEADER_SCAN_BYTES])
    if declared and _known_codec(declared):
        try:
            return payload.decode(declared)
        except UnicodeDecodeError:
            log_event(
                _logger,
                "decode:declared_encoding_failed",
                level=logging.WARNING,
                encoding=declared,
            )

    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return payload.decode("cp1252", errors="replace")


def load_statement(path: str | PathLike[str]) -> str:
    """Read and decode a statement export; file-system errors propagate."""

    return decode_statement(Path(path).read_bytes())


__all__ = ["decode_statement", "load_statement"]
