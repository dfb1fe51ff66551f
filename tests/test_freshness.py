from email.utils import formatdate

import pytest

from freshness import (
    ComparisonMethod,
    HttpValidatorComparator,
    clean_etag,
    compare,
    format_local_time,
    is_md5_etag,
    last_modified_matches,
    parse_http_date,
)
from url_probe import ProbeResult

LOCAL_MD5 = "9e107d9d372bb6826bd81d3542a419d6"


def probe_result(**kwargs):
    kwargs.setdefault("url", "https://example.com/file.zip")
    kwargs.setdefault("accessible", True)
    return ProbeResult(**kwargs)


class TestEtagHelpers:
    @pytest.mark.parametrize(
        "raw, cleaned",
        [
            ('"abc"', "abc"),
            ('W/"abc"', 'W/"abc'),
            ("abc", "abc"),
            (' "abc" ', "abc"),
        ],
    )
    def test_clean_etag(self, raw, cleaned):
        assert clean_etag(raw) == cleaned

    def test_is_md5_etag(self):
        assert is_md5_etag(f'"{LOCAL_MD5}"')
        assert is_md5_etag(f'"{LOCAL_MD5.upper()}"')
        assert not is_md5_etag('"5d41402a-1a2b"')
        assert not is_md5_etag(None)
        assert not is_md5_etag("")


class TestHttpValidatorComparator:
    def test_matching_md5_etag(self):
        verdict = compare(probe_result(etag=f'"{LOCAL_MD5}"'), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.ETAG_MD5_MATCH
        assert verdict.changed is False

    def test_match_ignores_case(self):
        verdict = compare(probe_result(etag=f'"{LOCAL_MD5.upper()}"'), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.ETAG_MD5_MATCH

    def test_differing_md5_etag(self):
        verdict = compare(probe_result(etag='"0123456789abcdef0123456789abcdef"'), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.ETAG_MD5_MISMATCH
        assert verdict.changed is True

    def test_md5_etag_with_unreadable_local_file_is_a_mismatch(self):
        verdict = compare(probe_result(etag=f'"{LOCAL_MD5}"'), "")
        assert verdict.method is ComparisonMethod.ETAG_MD5_MISMATCH
        assert verdict.changed is True

    def test_opaque_etag_cannot_be_verified(self):
        verdict = compare(probe_result(etag='"5d41402a-1a2b"', last_modified="Wed, 21 Oct 2015 07:28:00 GMT"), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.ETAG_UNVERIFIABLE
        assert verdict.changed is True

    def test_weak_md5_etag_cannot_be_verified(self):
        verdict = HttpValidatorComparator().compare(probe_result(etag=f'W/"{LOCAL_MD5}"'), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.ETAG_UNVERIFIABLE
        assert verdict.changed is True
        assert not is_md5_etag(f'W/"{LOCAL_MD5}"')

    def test_last_modified_only(self):
        verdict = compare(probe_result(last_modified="Wed, 21 Oct 2015 07:28:00 GMT"), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.LAST_MODIFIED_ONLY
        assert verdict.changed is True
        assert "Wed, 21 Oct 2015 07:28:00 GMT" in verdict.detail

    def test_no_validators(self):
        verdict = compare(probe_result(), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.NO_VALIDATOR
        assert verdict.changed is True

    def test_inaccessible_url(self):
        verdict = compare(probe_result(accessible=False, error="HTTP 404", etag=f'"{LOCAL_MD5}"'), LOCAL_MD5)
        assert verdict.method is ComparisonMethod.PROBE_ERROR
        assert verdict.changed is True
        assert "HTTP 404" in verdict.detail

    @pytest.mark.parametrize(
        "result",
        [
            probe_result(),
            probe_result(accessible=False, error="timeout"),
            probe_result(etag='"opaque"'),
            probe_result(etag='"0123456789abcdef0123456789abcdef"'),
            probe_result(etag=f'W/"{LOCAL_MD5}"'),
            probe_result(last_modified="Wed, 21 Oct 2015 07:28:00 GMT"),
        ],
    )
    @pytest.mark.parametrize("local_hash", [LOCAL_MD5, "", None])
    def test_only_an_md5_match_reports_unchanged(self, result, local_hash):
        verdict = HttpValidatorComparator().compare(result, local_hash)
        assert verdict.changed is True
        assert verdict.method is not ComparisonMethod.ETAG_MD5_MATCH


class TestLastModified:
    def test_parse_http_date(self):
        parsed = parse_http_date("Wed, 21 Oct 2015 07:28:00 GMT")
        assert parsed is not None
        assert parsed.year == 2015 and parsed.hour == 7

    @pytest.mark.parametrize("value", [None, "", "yesterday", "Wed, 99 Foo 2015"])
    def test_parse_http_date_rejects_garbage(self, value):
        assert parse_http_date(value) is None

    def test_same_second_is_a_likely_match(self):
        mtime = 1445412480.6
        assert last_modified_matches(formatdate(1445412480, usegmt=True), mtime) is True

    def test_different_second_is_likely_changed(self):
        assert last_modified_matches(formatdate(1445412480, usegmt=True), 1445412000.0) is False

    def test_missing_side_is_unknown(self):
        assert last_modified_matches(None, 1445412480.0) is None
        assert last_modified_matches("Wed, 21 Oct 2015 07:28:00 GMT", None) is None

    def test_format_local_time(self):
        assert format_local_time("not a date") is None
        rendered = format_local_time("Wed, 21 Oct 2015 07:28:00 GMT")
        assert rendered is not None
        assert len(rendered) == len("2015-10-21 07:28:00")
