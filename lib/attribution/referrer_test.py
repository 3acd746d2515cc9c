"""Unit tests for install referrer parsing."""

import base64
from urllib.parse import quote

import pytest

from lib.attribution.referrer import parse_referrer, percent_decode, split_pairs


def b64url(value: str) -> str:
    """Encode the way the link service does: base64url, no padding."""
    return base64.urlsafe_b64encode(value.encode()).decode().rstrip("=")


# --- _url (base64) format ---


class TestBase64Url:
    def test_extracts_url(self):
        url = "https://demo.dynalinks.app/promo"
        assert parse_referrer(f"_url={b64url(url)}") == url

    def test_with_utm_params(self):
        url = "https://demo.dynalinks.app/promo"
        referrer = f"utm_source=google-play&utm_medium=organic&_url={b64url(url)}&utm_campaign=x"
        assert parse_referrer(referrer) == url

    def test_url_with_query_params(self):
        url = "https://demo.dynalinks.app/promo?ref=abc&st=Hello%20World"
        assert parse_referrer(f"_url={b64url(url)}") == url

    def test_url_safe_alphabet(self):
        # Produces '-' and '_' in base64url output
        url = "https://demo.dynalinks.app/??>>~~"
        encoded = b64url(url)
        assert "-" in encoded or "_" in encoded
        assert parse_referrer(f"_url={encoded}") == url

    def test_padded_value_accepted(self):
        url = "https://demo.dynalinks.app/ab"
        padded = base64.urlsafe_b64encode(url.encode()).decode()
        assert parse_referrer(f"_url={padded}") == url

    def test_http_scheme(self):
        url = "http://demo.dynalinks.app/promo"
        assert parse_referrer(f"_url={b64url(url)}") == url

    def test_invalid_base64_returns_none(self):
        assert parse_referrer("_url=!!!not-base64!!!") is None

    def test_non_http_scheme_returns_none(self):
        assert parse_referrer(f"_url={b64url('ftp://files.example.com/x')}") is None

    def test_non_utf8_payload_returns_none(self):
        encoded = base64.urlsafe_b64encode(b"\xff\xfe\xfd").decode().rstrip("=")
        assert parse_referrer(f"_url={encoded}") is None


# --- url (legacy, percent-encoded) format ---


class TestLegacyUrl:
    def test_extracts_url(self):
        url = "https://demo.dynalinks.app/promo"
        assert parse_referrer(f"url={quote(url, safe='')}") == url

    def test_unencoded_value(self):
        assert parse_referrer("url=https://demo.dynalinks.app/promo") == "https://demo.dynalinks.app/promo"

    def test_http_scheme(self):
        assert parse_referrer("url=http%3A%2F%2Fdemo.dynalinks.app%2Fp") == "http://demo.dynalinks.app/p"

    def test_non_http_scheme_returns_none(self):
        assert parse_referrer("url=ftp%3A%2F%2Ffiles.example.com") is None

    def test_malformed_escape_returns_none(self):
        assert parse_referrer("url=https%3A%2F%2Fdemo%ZZ") is None


# --- Precedence ---


class TestPrecedence:
    NEW = "https://new.dynalinks.app/a"
    OLD = "https://old.dynalinks.app/b"

    def test_prefers_base64_when_first(self):
        referrer = f"_url={b64url(self.NEW)}&url={quote(self.OLD, safe='')}"
        assert parse_referrer(referrer) == self.NEW

    def test_prefers_base64_when_last(self):
        referrer = f"url={quote(self.OLD, safe='')}&_url={b64url(self.NEW)}"
        assert parse_referrer(referrer) == self.NEW

    def test_falls_back_when_base64_invalid(self):
        referrer = f"_url=%%%&url={quote(self.OLD, safe='')}"
        assert parse_referrer(referrer) == self.OLD

    def test_falls_back_when_base64_not_http(self):
        referrer = f"_url={b64url('myapp://home')}&url={quote(self.OLD, safe='')}"
        assert parse_referrer(referrer) == self.OLD

    def test_both_non_http_returns_none(self):
        referrer = f"_url={b64url('ftp://a')}&url=ftp%3A%2F%2Fb"
        assert parse_referrer(referrer) is None


# --- Empty and unrelated input ---


class TestNoUrl:
    @pytest.mark.parametrize("referrer", [None, "", "   "])
    def test_blank(self, referrer):
        assert parse_referrer(referrer) is None

    def test_unrelated_params(self):
        assert parse_referrer("utm_source=google-play&utm_medium=organic") is None

    def test_pairs_without_equals_ignored(self):
        assert parse_referrer("garbage&_url&url") is None


class TestHelpers:
    def test_split_pairs_first_equals_only(self):
        assert split_pairs("a=1&b=x=y&c") == [("a", "1"), ("b", "x=y")]

    def test_percent_decode_plus_is_space(self):
        assert percent_decode("Hello+World%21") == "Hello World!"

    def test_percent_decode_rejects_bad_utf8(self):
        assert percent_decode("%FF%FE") is None
