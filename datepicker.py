"""Toolkit-neutral date picker controller.

The controller owns the picker state (open flag, displayed month, selected
value, text buffer) and exposes it to a host UI and a host form:

* form binding: ``get_value`` / ``set_value`` / ``write_value`` plus the
  ``register_on_change`` / ``register_on_touched`` callbacks;
* an inbound command channel (``inputs``) and an outbound notification
  channel (``outputs``);
* navigation, day selection and masked text entry.

Anything visible that must observe settled state runs through ``schedule``,
which hands a callback to the host event loop, e.g. ``lambda cb:
root.after(0, cb)`` for tkinter or ``loop.call_soon`` for asyncio.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping

from calendar_logic import (
    CalendarCell,
    CalendarDate,
    build_month,
    day_names,
    format_date,
    month_title,
    next_month,
    parse_date,
    prev_month,
    shift_years,
    year_range,
)
from date_mask import normalize
from picker_options import DatePickerError, PickerOptions, load_options

logger = logging.getLogger(__name__)


Event = Mapping[str, Any]
Listener = Callable[[Event], None]


class InvalidDateError(DatePickerError, TypeError):
    """Raised when a non-date value is handed to the picker programmatically."""


def _noop(*_args: Any) -> None:
    pass


def _run_now(callback: Callable[[], None]) -> None:
    callback()


class EventChannel:
    """Ordered fan-out of event dicts to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: Event) -> None:
        for listener in list(self._listeners):
            listener(event)


class DatePicker:
    """Calendar picker state machine bound to a host form control."""

    def __init__(
        self,
        options: PickerOptions | Mapping[str, Any] | None = None,
        *,
        schedule: Callable[[Callable[[], None]], Any] | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        if not isinstance(options, PickerOptions):
            options = load_options(options)
        self.options = options
        self._schedule = schedule or _run_now
        self._clock = clock

        self.opened = False
        self.year_picker = False
        self.current: date = self._today()
        self.value: CalendarDate | None = None
        self.view_value: str | None = None
        self.days: list[CalendarCell] = []
        self.title = ""
        self.day_names = day_names(options.first_weekday_sunday, options.locale)
        self.years = year_range(options.min_date, options.max_date, today=self.current)

        self._on_change: Callable[[Any], None] = _noop
        self._on_touched: Callable[[], None] = _noop

        self.inputs = EventChannel()
        self.outputs = EventChannel()
        self.inputs.subscribe(self.handle_command)

        if options.initial_date is not None:
            self.current = options.initial_date
            self.select_date(options.initial_date)
        self.generate_calendar()

    # ------------------------------------------------------------------
    # Form binding
    # ------------------------------------------------------------------
    def get_value(self) -> CalendarDate | None:
        return self.value

    def set_value(self, value: CalendarDate | date | None) -> None:
        """Programmatic write; fires the on-change callback."""
        if value is None:
            return
        self._store(self._to_calendar_date(value))
        self.generate_calendar()

    def write_value(self, value: CalendarDate | date | str | None) -> None:
        """Host form write; does not echo back through on-change."""
        if value is None:
            return
        if isinstance(value, str):
            parsed = parse_date(value, self.options.model_format)
            if parsed is None:
                raise InvalidDateError(f"Cannot parse {value!r} with {self.options.model_format!r}")
            value = parsed
        self.value = self._to_calendar_date(value)
        self.view_value = self.value.formatted
        self.generate_calendar()

    def register_on_change(self, fn: Callable[[Any], None]) -> None:
        self._on_change = fn

    def register_on_touched(self, fn: Callable[[], None]) -> None:
        self._on_touched = fn

    def mark_touched(self) -> None:
        self._on_touched()

    def _form_value(self) -> CalendarDate | str | None:
        if self.value is None:
            return None
        if self.options.legacy_mask_mode:
            return format_date(self.value.date, self.options.model_format)
        return self.value

    def _to_calendar_date(self, value: Any) -> CalendarDate:
        if isinstance(value, CalendarDate):
            return value
        if not isinstance(value, date):
            raise InvalidDateError(
                f"Input data must be an instance of date, got {type(value).__name__}: {value!r}"
            )
        return CalendarDate.from_date(value, self.options.format, self.options.locale)

    def _store(self, value: CalendarDate | None) -> None:
        self.value = value
        self.view_value = value.formatted if value is not None else None
        self._on_change(self._form_value())

    def _today(self) -> date:
        now = self._clock()
        return now.date() if isinstance(now, datetime) else now

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------
    def handle_command(self, event: Event) -> None:
        kind = event.get("type")
        if kind == "setDate":
            payload = event.get("date")
            if isinstance(payload, datetime):
                payload = payload.date()
            if not isinstance(payload, date):
                raise InvalidDateError(
                    f"setDate expects a date instance, got {type(payload).__name__}: {payload!r}"
                )
            self.set_value(payload)
        elif kind == "open":
            self.open()
        elif kind == "close":
            self.close()
        elif kind == "toggle":
            self.toggle()
        else:
            logger.warning("Ignoring unknown picker command %r", kind)

    def _date_changed(self) -> None:
        self.outputs.emit({"type": "dateChanged", "date": self.value})

    # ------------------------------------------------------------------
    # Open / Close / Toggle
    # ------------------------------------------------------------------
    def open(self) -> None:
        self.opened = True
        self.year_picker = False
        self.outputs.emit({"type": "opened"})

    def close(self) -> None:
        self.opened = False
        self.outputs.emit({"type": "closed"})

    def toggle(self) -> None:
        if self.opened:
            self.close()
        else:
            self.open()

    # ------------------------------------------------------------------
    # Calendar
    # ------------------------------------------------------------------
    def generate_calendar(self) -> None:
        opts = self.options
        self.days = build_month(
            self.current,
            opts.first_weekday_sunday,
            opts.min_date,
            opts.max_date,
            self.value,
            today=self._today(),
            fmt=opts.format,
            locale_name=opts.locale,
        )
        self.title = month_title(self.current, opts.locale)

    def prev_month(self) -> None:
        self.current = prev_month(self.current)
        self.generate_calendar()

    def next_month(self) -> None:
        self.current = next_month(self.current)
        self.generate_calendar()

    def prev_year(self) -> None:
        self.current = shift_years(self.current, -1)
        self.generate_calendar()

    def next_year(self) -> None:
        self.current = shift_years(self.current, 1)
        self.generate_calendar()

    def go_today(self) -> None:
        self.current = self._today()
        self.select_date(self.current)

    def open_year_picker(self) -> None:
        def show() -> None:
            self.year_picker = True

        self._schedule(show)

    def select_year(self, year: int) -> None:
        self.current = shift_years(self.current, year - self.current.year)
        self._store(self._to_calendar_date(self.current))
        self.year_picker = False
        self._schedule(self.generate_calendar)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_cell(self, cell: CalendarCell) -> bool:
        """Select a grid cell; padding and disabled cells are ignored."""
        if cell.date is None or not cell.enabled:
            logger.debug("Ignoring selection of inactive cell %r", cell)
            return False
        self.select_date(cell.date.date)
        return True

    def select_date(self, d: date) -> None:
        """Select *d*: store it now, redraw and notify on the next tick."""
        selected = self._to_calendar_date(d)
        self.current = selected.date
        self._store(selected)

        if self.options.auto_apply and self.opened:
            self.close()

        def settle() -> None:
            self.generate_calendar()
            self._date_changed()

        self._schedule(settle)

    def type_text(self, raw: str | None) -> str | None:
        """Feed the text field's content through the mask; return the new buffer."""
        result = normalize(raw, self.view_value)
        if result.cleared:
            self.clear()
            return None

        self.view_value = result.view_value
        if result.committed is not None:
            self.current = result.committed
            self._store(self._to_calendar_date(result.committed))
            self.generate_calendar()
            self._date_changed()
        return self.view_value

    def clear(self) -> None:
        self._store(None)
        self._date_changed()
        if self.opened:
            self.close()
