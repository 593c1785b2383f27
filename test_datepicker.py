from datetime import date, datetime

import pytest

from calendar_logic import CalendarDate, parse_date
from datepicker import DatePicker, EventChannel, InvalidDateError
from picker_options import PickerOptions

TODAY = date(2024, 5, 15)


class Ticks:
    """Stand-in for a host event loop: callbacks wait until run()."""

    def __init__(self):
        self.pending = []

    def __call__(self, callback):
        self.pending.append(callback)

    def run(self):
        while self.pending:
            self.pending.pop(0)()


def make_picker(schedule=None, **overrides):
    options = {"locale": "C", **overrides}
    picker = DatePicker(options, schedule=schedule, clock=lambda: TODAY)
    changes, events = [], []
    picker.register_on_change(changes.append)
    picker.outputs.subscribe(events.append)
    return picker, changes, events


def test_initial_state():
    picker, changes, events = make_picker()
    assert picker.opened is False
    assert picker.get_value() is None
    assert picker.current == TODAY
    assert picker.title == "May 2024"
    assert picker.day_names[0] == "Mon"
    assert [c.day for c in picker.days if c.today] == [15]
    assert picker.years[0] == 1984 and picker.years[-1] == 2064
    assert changes == [] and events == []


def test_initial_date_is_selected():
    picker = DatePicker({"locale": "C", "initialDate": "2023-02-10"}, clock=lambda: TODAY)
    assert picker.get_value().date == date(2023, 2, 10)
    assert picker.current == date(2023, 2, 10)
    assert [c.day for c in picker.days if c.selected] == [10]


def test_accepts_options_instance():
    opts = PickerOptions(locale="C", first_weekday_sunday=True)
    picker = DatePicker(opts, clock=lambda: TODAY)
    assert picker.options is opts
    assert picker.day_names[0] == "Sun"


def test_open_close_toggle_emit_events():
    picker, _, events = make_picker()
    picker.open()
    assert picker.opened
    picker.toggle()
    assert not picker.opened
    picker.toggle()
    assert picker.opened
    picker.close()
    assert [e["type"] for e in events] == ["opened", "closed", "opened", "closed"]


def test_inbound_commands():
    picker, _, events = make_picker()
    picker.inputs.emit({"type": "open"})
    assert picker.opened
    picker.inputs.emit({"type": "toggle"})
    assert not picker.opened
    picker.inputs.emit({"type": "close"})
    picker.inputs.emit({"type": "unknown"})
    assert [e["type"] for e in events] == ["opened", "closed", "closed"]


def test_set_date_command():
    picker, changes, _ = make_picker()
    picker.inputs.emit({"type": "setDate", "date": datetime(2024, 5, 3, 12, 0)})
    value = picker.get_value()
    assert value.date == date(2024, 5, 3)
    assert value.formatted == "2024-05-03"
    assert changes == [value]
    assert [c.day for c in picker.days if c.selected] == [3]


@pytest.mark.parametrize("payload", ["2024-05-03", None, 20240503])
def test_set_date_command_rejects_non_dates(payload):
    picker, changes, events = make_picker()
    with pytest.raises(InvalidDateError, match="date"):
        picker.inputs.emit({"type": "setDate", "date": payload})
    assert picker.get_value() is None
    assert changes == [] and events == []


def test_set_value_none_is_noop_and_garbage_raises():
    picker, changes, _ = make_picker()
    picker.set_value(None)
    assert changes == []
    with pytest.raises(TypeError):
        picker.set_value("tomorrow")
    assert picker.get_value() is None


def test_write_value_does_not_echo():
    picker, changes, _ = make_picker()
    picker.write_value(None)
    picker.write_value("2024-05-20")
    assert picker.get_value().date == date(2024, 5, 20)
    assert picker.view_value == "2024-05-20"
    picker.write_value(CalendarDate.from_date(date(2024, 5, 21)))
    assert picker.get_value().day == 21
    assert changes == []
    with pytest.raises(InvalidDateError):
        picker.write_value("20/05/2024")


def test_touched_callback():
    picker, _, _ = make_picker()
    touched = []
    picker.register_on_touched(lambda: touched.append(True))
    picker.mark_touched()
    assert touched == [True]


def test_select_date_is_two_phase():
    ticks = Ticks()
    picker, changes, events = make_picker(schedule=ticks)
    picker.select_date(date(2024, 5, 20))

    # phase 1: value stored and bound, grid and notification pending
    assert picker.get_value().date == date(2024, 5, 20)
    assert changes == [picker.get_value()]
    assert not any(c.selected for c in picker.days)
    assert events == []

    ticks.run()
    assert [c.day for c in picker.days if c.selected] == [20]
    assert events == [{"type": "dateChanged", "date": picker.get_value()}]


def test_notification_carries_latest_value():
    ticks = Ticks()
    picker, _, events = make_picker(schedule=ticks)
    picker.select_date(date(2024, 5, 20))
    picker.select_date(date(2024, 5, 21))
    ticks.run()
    assert [e["date"].day for e in events] == [21, 21]


def test_auto_apply_closes_after_selection():
    picker, _, events = make_picker(autoApply=True)
    picker.open()
    picker.select_date(date(2024, 5, 20))
    assert not picker.opened
    assert [e["type"] for e in events] == ["opened", "closed", "dateChanged"]


def test_without_auto_apply_picker_stays_open():
    picker, _, _ = make_picker()
    picker.open()
    picker.select_date(date(2024, 5, 20))
    assert picker.opened


def test_select_cell_skips_padding_and_disabled():
    picker, changes, _ = make_picker(minDate="2024-05-10")
    padding = picker.days[0]
    assert padding.day is None
    assert picker.select_cell(padding) is False
    disabled = next(c for c in picker.days if c.day == 9)
    assert picker.select_cell(disabled) is False
    assert changes == []

    enabled = next(c for c in picker.days if c.day == 10)
    assert picker.select_cell(enabled) is True
    assert picker.get_value().date == date(2024, 5, 10)


def test_navigation():
    picker, _, _ = make_picker()
    picker.next_month()
    assert (picker.current.year, picker.current.month) == (2024, 6)
    assert picker.title == "June 2024"
    assert not any(c.today for c in picker.days)
    picker.prev_month()
    picker.prev_month()
    assert picker.current.month == 4
    picker.next_year()
    assert picker.current.year == 2025
    picker.prev_year()
    picker.prev_year()
    assert picker.current.year == 2023


def test_go_today_selects_clock_date():
    picker, changes, events = make_picker()
    picker.prev_year()
    picker.go_today()
    assert picker.current == TODAY
    assert picker.get_value().date == TODAY
    assert [c.day for c in picker.days if c.selected and c.today] == [15]
    assert events[-1]["type"] == "dateChanged"


def test_year_picker():
    ticks = Ticks()
    picker, changes, _ = make_picker(schedule=ticks)
    picker.open()
    picker.open_year_picker()
    assert picker.year_picker is False
    ticks.run()
    assert picker.year_picker is True

    picker.select_year(2030)
    assert picker.year_picker is False
    assert picker.get_value().date == date(2030, 5, 15)
    ticks.run()
    assert picker.title == "May 2030"

    picker.open()
    assert picker.year_picker is False


def test_type_text_masks_and_commits():
    picker, changes, events = make_picker(format="%d.%m.%Y")
    assert picker.type_text("25") == "25/"
    assert picker.type_text("25/1") == "25/1"
    assert changes == []
    assert picker.type_text("25/12/2024") == "25.12.2024"
    value = picker.get_value()
    assert value.date == date(2024, 12, 25)
    assert changes == [value]
    assert events == [{"type": "dateChanged", "date": value}]
    assert picker.title == "December 2024"


def test_type_text_invalid_date_does_not_commit():
    picker, changes, events = make_picker()
    assert picker.type_text("31/02/2024") == "31/02/2024"
    assert picker.get_value() is None
    assert changes == [] and events == []


def test_type_empty_clears_and_closes():
    picker, changes, events = make_picker()
    picker.set_value(date(2024, 5, 3))
    picker.open()
    assert picker.type_text("") is None
    assert picker.get_value() is None
    assert picker.view_value is None
    assert changes[-1] is None
    assert not picker.opened
    types = [e["type"] for e in events]
    assert types == ["opened", "dateChanged", "closed"]
    assert events[1]["date"] is None


def test_legacy_mode_binds_model_string():
    picker, changes, _ = make_picker(legacyMaskMode=True, format="%d %B %Y")
    picker.type_text("05/06/2016")
    assert changes == ["2016-06-05"]
    assert picker.view_value == "05 June 2016"
    assert isinstance(picker.get_value(), CalendarDate)


def test_event_channel_unsubscribe():
    channel = EventChannel()
    seen = []
    unsubscribe = channel.subscribe(seen.append)
    channel.emit({"type": "opened"})
    unsubscribe()
    unsubscribe()
    channel.emit({"type": "closed"})
    assert seen == [{"type": "opened"}]


def test_datetime_bounds_in_options_instance():
    opts = PickerOptions(locale="C", min_date=datetime(2024, 5, 10, 9, 0))
    picker = DatePicker(opts, clock=lambda: TODAY)
    assert [c.day for c in picker.days if c.day and not c.enabled] == list(range(1, 10))


def test_datetime_clock_keeps_today_highlight():
    picker = DatePicker({"locale": "C"}, clock=lambda: datetime(2024, 5, 15, 10, 30))
    assert picker.current == TODAY and type(picker.current) is date
    assert [c.day for c in picker.days if c.today] == [15]
    picker.prev_year()
    picker.go_today()
    assert picker.get_value().date == TODAY


def test_type_text_with_unusual_digits_does_not_raise():
    picker, changes, events = make_picker()
    assert picker.type_text("13/²") == "13/²"
    assert picker.get_value() is None
    assert changes == [] and events == []


def test_model_format_drives_write_and_legacy_binding():
    picker, changes, _ = make_picker(modelFormat="%d/%m/%Y", legacyMaskMode=True)
    picker.write_value("20/05/2024")
    assert picker.get_value().date == date(2024, 5, 20)
    with pytest.raises(InvalidDateError):
        picker.write_value("2024-05-20")
    picker.select_date(date(2024, 5, 21))
    assert changes == ["21/05/2024"]


@pytest.mark.parametrize("fmt", ["%Y-%m-%d", "%d/%m/%Y", "%d %B %Y", "%A %d.%m.%Y"])
def test_displayed_value_round_trips(fmt):
    picker, _, _ = make_picker(format=fmt)
    for d in (date(2024, 2, 29), date(1999, 12, 31)):
        picker.select_date(d)
        assert parse_date(picker.get_value().formatted, fmt) == d
