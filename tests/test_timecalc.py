from datetime import datetime, timezone

import pytest

from nzi.config import Location
from nzi.timecalc import (
    ConversionResult,
    TimeConverter,
    TimeService,
    UnknownLocation,
    Unresolvable,
    format_time_delta,
    parse_time_digits,
    resolve_time,
)

PLUS12 = Location("Plus Twelve", "P12", "Nowhere", "Etc/GMT-12", "NZD")
MINUS5 = Location("Minus Five", "M05", "Nowhere", "Etc/GMT+5", "USD")
UTC = Location("Greenwich", "UTC", "Nowhere", "Etc/UTC", "GBP")
KOLKATA = Location("Kolkata", "CCU", "India", "Asia/Kolkata", "INR")
NEW_YORK = Location("New York", "NYC", "USA", "America/New_York", "USD")


def _service(*locations, now):
    service = TimeService()
    service.update(locations, now)
    return service


def test_resolve_time_reports_offset_and_civil_time():
    now = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
    resolved = resolve_time(KOLKATA, now)
    assert resolved.utc_offset_hours == 5.5
    assert resolved.civil_datetime.strftime("%H:%M") == "17:30"
    assert resolved.location_code == "CCU"
    assert resolved.is_daytime


def test_resolve_time_with_unknown_zone_is_skipped():
    bogus = Location("Atlantis", "ATL", "Sea", "Ocean/Atlantis", "XXX")
    assert resolve_time(bogus) is None
    service = _service(bogus, UTC, now=datetime(2026, 1, 1, tzinfo=timezone.utc))
    assert [t.location_code for t in service.times] == ["UTC"]


def test_time_string_formats():
    resolved = resolve_time(UTC, datetime(2026, 1, 1, 15, 4, 5, tzinfo=timezone.utc))
    assert resolved.time_string(True, True) == "15:04:05"
    assert resolved.time_string(True, False) == "15:04"
    assert resolved.time_string(False, False) == "03:04 PM"


def test_plus_twelve_to_minus_five_lands_on_previous_day():
    service = _service(PLUS12, MINUS5, now=datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc))
    result = service.convert("P12", "M05", 9, 0)
    assert result == ConversionResult(16, 0, -1)
    assert result.format() == "16:00 (yesterday)"


@pytest.mark.parametrize("hour,minute", [(0, 0), (9, 0), (13, 45), (23, 59)])
def test_fixed_offset_round_trip(hour, minute):
    service = _service(PLUS12, MINUS5, KOLKATA, now=datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc))
    for a, b in (("P12", "M05"), ("CCU", "P12"), ("M05", "CCU")):
        there = service.convert(a, b, hour, minute)
        back = service.convert(b, a, there.result_hour, there.result_minute)
        assert (back.result_hour, back.result_minute) == (hour, minute)
        assert back.day_offset == -there.day_offset


def test_codes_are_case_insensitive():
    service = _service(UTC, MINUS5, now=datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc))
    assert service.convert("utc", "m05", 12, 0) == ConversionResult(7, 0, 0)


def test_unknown_location_raises():
    service = _service(UTC, now=datetime(2026, 6, 1, tzinfo=timezone.utc))
    with pytest.raises(UnknownLocation):
        service.convert("UTC", "XYZ", 1, 0)
    with pytest.raises(UnknownLocation):
        service.convert("XYZ", "UTC", 1, 0)


def test_ambiguous_time_uses_standard_offset():
    # 2026-11-01 01:30 happens twice in New York; EST is UTC-5.
    service = _service(NEW_YORK, UTC, now=datetime(2026, 11, 1, 16, 0, tzinfo=timezone.utc))
    assert service.convert("NYC", "UTC", 1, 30) == ConversionResult(6, 30, 0)


def test_spring_forward_gap_is_unresolvable():
    service = _service(NEW_YORK, UTC, now=datetime(2026, 3, 8, 17, 0, tzinfo=timezone.utc))
    with pytest.raises(Unresolvable):
        service.convert("NYC", "UTC", 2, 30)
    assert service.convert("NYC", "UTC", 3, 30) == ConversionResult(7, 30, 0)


def test_source_date_comes_from_source_civil_time():
    # 23:00 UTC on the 17th is already the 18th at UTC+12.
    service = _service(PLUS12, UTC, now=datetime(2026, 10, 17, 23, 0, tzinfo=timezone.utc))
    assert service.convert("P12", "UTC", 6, 0) == ConversionResult(18, 0, -1)


def test_format_time_delta():
    now = datetime(2026, 6, 1, tzinfo=timezone.utc)
    assert format_time_delta(resolve_time(UTC, now), resolve_time(PLUS12, now)) == "+12h"
    assert format_time_delta(resolve_time(PLUS12, now), resolve_time(KOLKATA, now)) == "-6.5h"


@pytest.mark.parametrize(
    "digits,expected",
    [
        ("5", (5, 0)),
        ("9", (9, 0)),
        ("14", (14, 0)),
        ("99", (23, 0)),
        ("143", (1, 43)),
        ("930", (9, 30)),
        ("187", (18, 7)),
        ("1930", (19, 30)),
        ("2999", (23, 59)),
        ("", None),
    ],
)
def test_parse_time_digits(digits, expected):
    assert parse_time_digits(digits) == expected


def test_digit_entry_accumulates_up_to_four_digits():
    tc = TimeConverter("WLG", "BOS", 8, 15)
    for ch in "19305":
        tc.handle_digit(ch)
    assert tc.input_buffer == "1930"
    assert (tc.input_hour, tc.input_minute) == (19, 30)
    assert tc.format_input_display() == "19:30"

    tc.handle_backspace()
    assert tc.input_buffer == "193"
    assert (tc.input_hour, tc.input_minute) == (19, 3)


def test_digit_entry_display_shows_placeholders():
    tc = TimeConverter("WLG", "BOS")
    tc.handle_digit("1")
    assert tc.format_input_display() == "1_:__"
    tc.handle_digit("4")
    tc.handle_digit("3")
    assert tc.format_input_display() == "14:3_"
    assert tc.is_typing
    tc.clear_input_buffer()
    assert not tc.is_typing
    assert tc.format_input_display() == "01:43"


def test_hour_and_minute_wraparound():
    tc = TimeConverter("WLG", "BOS", 23, 59)
    tc.increment_hour()
    tc.increment_minute()
    assert (tc.input_hour, tc.input_minute) == (0, 0)
    tc.decrement_hour()
    tc.decrement_minute()
    assert (tc.input_hour, tc.input_minute) == (23, 59)


def test_reset_goes_to_midnight_and_clears_buffer():
    tc = TimeConverter("WLG", "BOS", 7, 45, input_buffer="74")
    tc.reset()
    assert (tc.input_hour, tc.input_minute, tc.input_buffer) == (0, 0, "")


def test_cycle_to_city_skips_source():
    tc = TimeConverter("WLG", "BOS")
    codes = ["WLG", "BOS", "LDN"]
    tc.cycle_to_city(codes)
    assert tc.to_code == "LDN"
    tc.cycle_to_city(codes)
    assert tc.to_code == "BOS"


def test_cycle_with_two_codes_never_lands_on_source():
    tc = TimeConverter("WLG", "BOS")
    tc.cycle_to_city(["WLG", "BOS"])
    assert tc.to_code == "BOS"
    assert tc.to_code != tc.from_code


def test_swap_cities():
    tc = TimeConverter("WLG", "BOS")
    tc.swap_cities()
    assert (tc.from_code, tc.to_code) == ("BOS", "WLG")


def test_result_formatting():
    assert ConversionResult(9, 5, 0).format() == "09:05"
    assert ConversionResult(9, 5, 1).format() == "09:05 (tomorrow)"
    assert ConversionResult(9, 5, 2).format() == "09:05 (+2 days)"
    assert TimeConverter("A", "B").format_result() == "--:--"


def test_cycle_skips_every_copy_of_source():
    tc = TimeConverter("WLG", "BOS")
    codes = ["WLG", "BOS", "LDN", "wlg"]
    seen = []
    for _ in range(4):
        tc.cycle_to_city(codes)
        seen.append(tc.to_code)
    assert seen == ["LDN", "BOS", "LDN", "BOS"]


def test_cycle_with_only_the_source_leaves_destination():
    tc = TimeConverter("WLG", "BOS")
    tc.cycle_to_city(["WLG", "wlg"])
    assert tc.to_code == "BOS"
