from datetime import datetime, timezone, timedelta

from app.infrastructure.calendar.ical_writer import (
    CalendarEvent,
    escape_text,
    fold_line,
    format_utc,
    render_calendar,
)


def test_escape_text():
    assert escape_text("a,b;c\\d") == "a\\,b\\;c\\\\d"
    assert escape_text("line1\nline2\r\nline3") == "line1\\nline2\\nline3"
    assert escape_text("") == ""
    assert escape_text(None) == ""


def test_short_lines_are_not_folded():
    line = "SUMMARY:" + "x" * 67
    assert fold_line(line) == line


def test_long_lines_fold_at_75_octets():
    line = "DESCRIPTION:" + "abcdefghij" * 20
    folded = fold_line(line)
    physical = folded.split("\r\n")

    assert len(physical) > 1
    assert all(len(p.encode("utf-8")) <= 75 for p in physical)
    assert all(p.startswith(" ") for p in physical[1:])
    # unfolding restores the original content line
    assert "".join([physical[0]] + [p[1:] for p in physical[1:]]) == line


def test_folding_never_splits_multibyte_characters():
    line = "SUMMARY:" + "Güímar ñandú " * 20
    physical = fold_line(line).split("\r\n")

    for p in physical:
        assert len(p.encode("utf-8")) <= 75
    assert "".join([physical[0]] + [p[1:] for p in physical[1:]]) == line


def test_format_utc():
    assert format_utc(datetime(2030, 1, 14, 9, 30)) == "20300114T093000Z"
    plus_one = timezone(timedelta(hours=1))
    assert format_utc(datetime(2030, 7, 1, 9, 0, tzinfo=plus_one)) == "20300701T080000Z"


def test_render_calendar_structure():
    event = CalendarEvent(
        uid="appointment-1@clinic.test",
        start=datetime(2030, 1, 14, 9, 0, tzinfo=timezone.utc),
        end=datetime(2030, 1, 14, 9, 30, tzinfo=timezone.utc),
        summary="Appointment: Ana, with Dr. House",
        description="Reason: back pain\nStatus: pending",
        location="Centro Médico",
        created=datetime(2030, 1, 1, 12, 0),
    )
    body = render_calendar([event], name="Clinic - Appointments", prodid="-//Test//EN",
                           timezone_name="Atlantic/Canary", refresh_minutes=60)

    assert body.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//Test//EN\r\n")
    assert body.endswith("END:VCALENDAR\r\n")
    assert "\n" not in body.replace("\r\n", "")
    assert "UID:appointment-1@clinic.test\r\n" in body
    assert "DTSTART:20300114T090000Z\r\n" in body
    assert "DTEND:20300114T093000Z\r\n" in body
    assert "DTSTAMP:20300101T120000Z\r\n" in body
    assert "SUMMARY:Appointment: Ana\\, with Dr. House\r\n" in body
    assert "DESCRIPTION:Reason: back pain\\nStatus: pending\r\n" in body
    assert "STATUS:TENTATIVE\r\n" in body
    assert "X-WR-TIMEZONE:Atlantic/Canary\r\n" in body
    assert "REFRESH-INTERVAL;VALUE=DURATION:PT60M\r\n" in body
    assert body.count("BEGIN:VEVENT") == body.count("END:VEVENT") == 1


def test_empty_calendar_is_valid():
    body = render_calendar([], name="Empty", prodid="-//Test//EN")
    assert "BEGIN:VEVENT" not in body
    assert body.splitlines()[0] == "BEGIN:VCALENDAR"
    assert body.splitlines()[-1] == "END:VCALENDAR"
