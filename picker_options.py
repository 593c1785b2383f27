"""Picker options: defaults, validation and JSON config loading."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping

from dateutil.parser import isoparse

from calendar_logic import DEFAULT_FORMAT

logger = logging.getLogger(__name__)


class DatePickerError(Exception):
    """Base exception for date picker errors."""


class OptionsError(DatePickerError, ValueError):
    """Raised when picker options contradict each other."""


@dataclass(frozen=True)
class PickerOptions:
    auto_apply: bool = False
    locale: str = "pt-BR"
    min_date: date | None = None
    max_date: date | None = None
    initial_date: date | None = None
    first_weekday_sunday: bool = False
    format: str = DEFAULT_FORMAT
    model_format: str = DEFAULT_FORMAT
    legacy_mask_mode: bool = False

    def __post_init__(self) -> None:
        for field in ("min_date", "max_date", "initial_date"):
            value = getattr(self, field)
            if isinstance(value, datetime):
                object.__setattr__(self, field, value.date())
        if (self.min_date is not None and self.max_date is not None
                and self.min_date > self.max_date):
            raise OptionsError(
                f"minDate {self.min_date.isoformat()} is after maxDate {self.max_date.isoformat()}"
            )


_DEFAULTS = PickerOptions()

# external key -> (field name, expected kind)
_KEYS = {
    "autoApply": ("auto_apply", bool),
    "locale": ("locale", str),
    "minDate": ("min_date", date),
    "maxDate": ("max_date", date),
    "initialDate": ("initial_date", date),
    "firstWeekdaySunday": ("first_weekday_sunday", bool),
    "format": ("format", str),
    "modelFormat": ("model_format", str),
    "legacyMaskMode": ("legacy_mask_mode", bool),
}
_KEYS.update({field: (field, kind) for field, kind in list(_KEYS.values())})


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value).date()
        except ValueError:
            return None
    return None


def load_options(overrides: Mapping[str, Any] | None = None) -> PickerOptions:
    """Build options from *overrides*, returning defaults for missing keys.

    Values of the wrong type are ignored. Raises OptionsError when the
    resulting bounds are inverted.
    """
    values: dict[str, Any] = {}
    for key, raw in (overrides or {}).items():
        if key not in _KEYS:
            logger.warning("Ignoring unknown picker option %r", key)
            continue
        field, kind = _KEYS[key]
        if raw is None:
            continue
        if kind is date:
            coerced = _coerce_date(raw)
            if coerced is None:
                logger.warning("Ignoring option %r: %r is not a date", key, raw)
                continue
            values[field] = coerced
        elif isinstance(raw, kind) and (raw or kind is bool):
            values[field] = raw
        else:
            logger.warning("Ignoring option %r: expected %s, got %r", key, kind.__name__, raw)
    return PickerOptions(**values)


def load_options_file(path: str | os.PathLike) -> PickerOptions:
    """Load options from a JSON file; missing or malformed files give defaults."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            stored = json.load(f)
    except FileNotFoundError:
        logger.debug("No picker options at %s, using defaults", path)
        return _DEFAULTS
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Could not read picker options from %s: %s", path, exc)
        return _DEFAULTS
    if not isinstance(stored, dict):
        logger.warning("Picker options in %s are not a JSON object", path)
        return _DEFAULTS
    return load_options(stored)
