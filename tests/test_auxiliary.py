import pytest

from auxiliary import format_bytes, format_path_for_display, parse_size, short_hash


@pytest.mark.parametrize(
    "text, expected",
    [
        ("100MB", 100 * 1024**2),
        ("1.5GB", 1610612736),
        ("500KB", 500 * 1024),
        ("1G", 1024**3),
        ("2m", 2 * 1024**2),
        ("1024", 1024),
        ("  250mb ", 250 * 1024**2),
    ],
)
def test_parse_size(text, expected):
    assert parse_size(text) == expected


def test_parse_size_passes_integers_through():
    assert parse_size(4096) == 4096


@pytest.mark.parametrize("text", ["", "abc", "10TB", "MB", "1.5.2GB", "-5MB"])
def test_parse_size_rejects_unknown_formats(text):
    with pytest.raises(ValueError, match="Invalid size"):
        parse_size(text)


@pytest.mark.parametrize(
    "size, expected",
    [
        (1610612736, "1.5GB"),
        (100 * 1024**2, "100.0MB"),
        (2048, "2.0KB"),
        (789, "789 bytes"),
        (0, "0 bytes"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_threshold_round_trip_for_one_and_a_half_gigabytes():
    assert format_bytes(parse_size("1.5GB")) == "1.5GB"


def test_format_path_for_display_replaces_home():
    assert format_path_for_display("/home/ana/Downloads/x.iso", "/home/ana") == "~/Downloads/x.iso"
    assert format_path_for_display("/home/anastasia/x.iso", "/home/ana") == "/home/anastasia/x.iso"


def test_short_hash_distinguishes_missing_from_unreadable():
    assert short_hash(None) == "not computed"
    assert short_hash("") == "unavailable"
    assert short_hash("d41d8cd98f00b204e9800998ecf8427e") == "d41d8cd98f00"
