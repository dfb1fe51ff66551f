import plistlib

from webloc_writer import WeblocWriter, webloc_content, webloc_path_for


def test_content_is_an_xml_plist_with_url_key():
    content = webloc_content("https://example.com/a.iso?x=1&y=2")

    assert content.startswith("<?xml")
    assert plistlib.loads(content.encode("utf-8")) == {"URL": "https://example.com/a.iso?x=1&y=2"}


def test_placeholder_sits_next_to_the_original(tmp_path):
    original = tmp_path / "a.iso"

    written = WeblocWriter().write(original, "https://example.com/a.iso")

    assert written == webloc_path_for(original) == f"{original}.webloc"
    assert plistlib.loads((tmp_path / "a.iso.webloc").read_bytes())["URL"] == "https://example.com/a.iso"


def test_unwritable_location_returns_none(tmp_path, caplog):
    missing_dir = tmp_path / "missing" / "a.iso"

    assert WeblocWriter().write(missing_dir, "https://example.com/a.iso") is None
    assert "Failed to write .webloc" in caplog.text
