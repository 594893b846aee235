from site_locator.timeutils import format_clock, format_millis


def test_format_millis():
    assert format_millis(0) == "00:00:00"
    assert format_millis(None) == "00:00:00"
    assert format_millis(-5) == "00:00:00"
    assert format_millis(8.75 * 60 * 60 * 1000) == "08:45:00"
    assert format_millis(61_499) == "00:01:01"


def test_format_clock():
    # 2024-05-06T06:00:00Z
    base = 1714975200000
    assert format_clock(base) == "06:00"
    assert format_clock(base, "Europe/Berlin") == "08:00"
    assert format_clock(None) == "–"
