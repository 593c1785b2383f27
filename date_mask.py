"""Keystroke masking for ``DD/MM/YYYY`` date entry."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date

from calendar_logic import parse_date

logger = logging.getLogger(__name__)

DISPLAY_FORMAT = "%d/%m/%Y"
INVALID_SENTINEL = "Invalid date"

_re_letters = re.compile(r"[a-zA-Z]")
_re_display = re.compile(r"\d{2}/\d{2}/\d{4}")


@dataclass(frozen=True)
class MaskResult:
    """Outcome of one masking pass.

    ``committed`` is only set when the buffer is a complete, real date.
    ``invalid`` reflects the length-8/length-10 date check and does not gate commit.
    """

    view_value: str | None
    committed: date | None = None
    invalid: bool = False
    cleared: bool = False


def is_blank(raw: str | None) -> bool:
    return raw is None or raw == "" or raw == INVALID_SENTINEL


def parse_display(text: str | None) -> date | None:
    """Strictly parse a full ``DD/MM/YYYY`` buffer."""
    if not text or not _re_display.fullmatch(text):
        return None
    return parse_date(text, DISPLAY_FORMAT)


def _is_real_date(day: str, month: str, year: str, year_fmt: str) -> bool:
    return parse_date(f"{year}-{month}-{day}", f"{year_fmt}-%m-%d") is not None


def normalize(raw: str | None, previous: str | None = None) -> MaskResult:
    """Reformat the typed buffer *raw* and commit it when complete.

    *previous* is the buffer before this keystroke; when *raw* is a strict
    prefix of it the user is deleting and the buffer is left as typed.
    """
    if is_blank(raw):
        return MaskResult(view_value=None, cleared=True)

    value = _re_letters.sub("", raw)
    if previous and len(value) < len(previous) and previous.startswith(value):
        return MaskResult(view_value=value)

    view = value
    invalid = False
    length = len(value)

    if length == 2:
        view = value + "/"

    if length == 4 and value[3] in "23456789":
        # a month can't start with 2-9
        view = value[:3] + "0" + value[3] + "/"
    elif length == 5:
        view = value + "/"
    elif length == 8:
        invalid = not _is_real_date(value[:2], value[3:5], value[6:8], "%y")
    elif length == 10:
        invalid = not _is_real_date(value[:2], value[3:5], value[6:10], "%Y")

    if len(view) > 10:
        view = view[:9] + view[10:11]
    if len(view) >= 2 and view[2:3] != "/":
        view = view[:2] + "/" + view[2:10]
    if len(view) >= 5 and view[5:6] != "/":
        view = view[:5] + "/" + view[5:10]

    view = view.replace("//", "/", 1)

    committed = parse_display(view)
    if committed is None:
        logger.debug("Buffer %r not committed (invalid=%s)", view, invalid)
    return MaskResult(view_value=view, committed=committed, invalid=invalid)
