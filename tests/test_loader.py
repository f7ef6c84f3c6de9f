"""
Tests for HAR loading and decoding.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from src.loadtap.errors import DecodeError
from src.loadtap.har import HARLoader, decode_capture, parse_timestamp


@pytest.fixture
def sample_har():
    """Minimal HAR 1.2 document with one page and two entries."""
    return {
        "log": {
            "version": "1.2",
            "creator": {"name": "Firefox", "version": "120.0"},
            "browser": {"name": "Firefox", "version": "120.0"},
            "pages": [
                {"id": "page_1", "title": "Home", "startedDateTime": "2024-01-15T10:00:00.000Z"}
            ],
            "entries": [
                {
                    "pageref": "page_1",
                    "startedDateTime": "2024-01-15T10:00:00.123+01:00",
                    "request": {
                        "method": "post",
                        "url": "https://api.example.com/login",
                        "headers": [{"name": "Content-Type", "value": "application/x-www-form-urlencoded"}],
                        "cookies": [{"name": "sid", "value": "1"}],
                        "postData": {
                            "mimeType": "application/x-www-form-urlencoded",
                            "text": "user=a",
                            "params": [{"name": "user", "value": "a"}],
                        },
                    },
                    "response": {
                        "status": 302,
                        "headers": [{"name": "Location", "value": "https://api.example.com/home"}],
                        "content": {"mimeType": "text/html", "text": ""},
                    },
                },
                {
                    "pageref": "page_1",
                    "startedDateTime": "2024-01-15T09:00:01Z",
                    "request": {"method": "GET", "url": "https://api.example.com/home"},
                },
            ],
        }
    }


class TestParseTimestamp:
    """Test parse_timestamp()."""

    def test_utc_suffix(self):
        assert parse_timestamp("2024-01-15T10:00:00.000Z") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_offset(self):
        """Test offsets are kept and comparisons are absolute."""
        parsed = parse_timestamp("2024-01-15T11:00:00+01:00")

        assert parsed == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_long_fraction_truncated(self):
        """Test nanosecond fractions are accepted."""
        parsed = parse_timestamp("2024-01-15T10:00:00.123456789Z")

        assert parsed.microsecond == 123456

    def test_short_fraction_padded(self):
        assert parse_timestamp("2024-01-15T10:00:00.5Z").microsecond == 500000

    def test_compact_offset(self):
        assert parse_timestamp("2024-01-15T10:00:00+0200").utcoffset() == timedelta(hours=2)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-15T10:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["yesterday", "", None, 12345, "2024-13-45T10:00:00Z"])
    def test_invalid(self, value):
        with pytest.raises(DecodeError):
            parse_timestamp(value)


class TestDecodeCapture:
    """Test decode_capture()."""

    def test_metadata(self, sample_har):
        capture = decode_capture(sample_har)

        assert capture.version == "1.2"
        assert capture.creator.name == "Firefox"
        assert capture.browser.name == "Firefox"

    def test_pages_and_entries(self, sample_har):
        """Test pages and entries decode in file order."""
        capture = decode_capture(sample_har)

        assert [p.id for p in capture.pages] == ["page_1"]
        assert [e.request.url for e in capture.entries] == [
            "https://api.example.com/login",
            "https://api.example.com/home",
        ]

    def test_request_details(self, sample_har):
        """Test method normalisation, cookies and post data."""
        request = decode_capture(sample_har).entries[0].request

        assert request.method == "POST"
        assert request.cookies[0].name == "sid"
        assert request.post_data.is_form_urlencoded
        assert request.post_data.params[0].value == "a"

    def test_response_details(self, sample_har):
        response = decode_capture(sample_har).entries[0].response

        assert response.status == 302
        assert response.header("location") == "https://api.example.com/home"

    def test_missing_response(self, sample_har):
        """Test entries without a response decode with response None."""
        assert decode_capture(sample_har).entries[1].response is None

    def test_missing_log(self):
        with pytest.raises(DecodeError):
            decode_capture({"entries": []})

    def test_entries_not_a_list(self):
        with pytest.raises(DecodeError):
            decode_capture({"log": {"entries": {}}})

    def test_request_without_url(self, sample_har):
        del sample_har["log"]["entries"][0]["request"]["url"]

        with pytest.raises(DecodeError):
            decode_capture(sample_har)

    def test_entry_not_an_object(self):
        """Test non-object entries are decode errors, not crashes."""
        with pytest.raises(DecodeError, match="entry"):
            decode_capture({"log": {"entries": [None]}})

    def test_page_not_an_object(self):
        with pytest.raises(DecodeError, match="page"):
            decode_capture({"log": {"pages": ["page_1"], "entries": []}})

    def test_post_data_not_an_object(self, sample_har):
        sample_har["log"]["entries"][0]["request"]["postData"] = "x"

        with pytest.raises(DecodeError, match="postData"):
            decode_capture(sample_har)

    def test_post_data_params_not_objects(self, sample_har):
        sample_har["log"]["entries"][0]["request"]["postData"]["params"] = ["user=a"]

        with pytest.raises(DecodeError):
            decode_capture(sample_har)

    def test_headers_not_a_list(self, sample_har):
        sample_har["log"]["entries"][0]["request"]["headers"] = {"Accept": "*/*"}

        with pytest.raises(DecodeError, match="header"):
            decode_capture(sample_har)

    def test_response_content_not_an_object(self, sample_har):
        sample_har["log"]["entries"][0]["response"]["content"] = "<html>"

        with pytest.raises(DecodeError, match="content"):
            decode_capture(sample_har)


class TestHARLoader:
    """Test HARLoader file handling."""

    def test_load(self, tmp_path, sample_har):
        """Test loading a HAR file from disk."""
        har_file = tmp_path / "session.har"
        har_file.write_text(json.dumps(sample_har), encoding='utf-8')

        capture = HARLoader(str(har_file)).load()

        assert len(capture.entries) == 2

    def test_load_with_bom(self, tmp_path, sample_har):
        """Test files starting with a UTF-8 BOM."""
        har_file = tmp_path / "session.har"
        har_file.write_text("\ufeff" + json.dumps(sample_har), encoding='utf-8')

        assert len(HARLoader.load_from_file(str(har_file)).pages) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            HARLoader(str(tmp_path / "nope.har")).load()

    def test_invalid_json(self, tmp_path):
        har_file = tmp_path / "broken.har"
        har_file.write_text("{not json")

        with pytest.raises(DecodeError):
            HARLoader(str(har_file)).load()

    def test_invalid_utf8(self, tmp_path):
        """Test undecodable bytes are decode errors."""
        har_file = tmp_path / "latin1.har"
        har_file.write_bytes(b'{"log": {"comment": "caf\xe9", "entries": []}}')

        with pytest.raises(DecodeError):
            HARLoader(str(har_file)).load()
