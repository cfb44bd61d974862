"""Tests for registry request signing."""

import hashlib

from node_lifecycle.core.secrets import SecretValue
from node_lifecycle.registry.signing import (
    compute_checksum,
    encode_body,
    redact_checksum,
    signed_url,
    sorted_query_string,
)


class TestSortedQueryString:
    def test_empty(self):
        assert sorted_query_string(None) == ""
        assert sorted_query_string({}) == ""

    def test_order_independent(self):
        assert sorted_query_string({"b": "2", "a": "1"}) == "a=1&b=2"
        assert sorted_query_string({"a": "1", "b": "2"}) == "a=1&b=2"

    def test_values_form_encoded(self):
        assert sorted_query_string({"url": "http://x/y z"}) == "url=http%3A%2F%2Fx%2Fy+z"


class TestEncodeBody:
    def test_none_is_empty(self):
        assert encode_body(None) == ""

    def test_compact(self):
        assert encode_body({"id": "42"}) == '{"id":"42"}'


class TestComputeChecksum:
    def test_known_value(self):
        expected = hashlib.sha1(b'deleteServer{"id":"42"}abc').hexdigest()
        assert compute_checksum("deleteServer", "", '{"id":"42"}', "abc") == expected

    def test_secret_value_equivalent_to_raw(self):
        assert compute_checksum("getServers", "", "", SecretValue("abc")) == compute_checksum(
            "getServers", "", "", "abc"
        )

    def test_deterministic(self):
        a = compute_checksum("getServers", "a=1", "", "abc")
        b = compute_checksum("getServers", "a=1", "", "abc")
        assert a == b
        assert len(a) == 40

    def test_each_input_changes_checksum(self):
        base = compute_checksum("getServers", "", "", "abc")
        assert compute_checksum("deleteServer", "", "", "abc") != base
        assert compute_checksum("getServers", "a=1", "", "abc") != base
        assert compute_checksum("getServers", "", "{}", "abc") != base
        assert compute_checksum("getServers", "", "", "abd") != base


class TestSignedUrl:
    def test_without_params(self):
        checksum = hashlib.sha1(b"getServersabc").hexdigest()
        assert (
            signed_url("https://lb/scalelite/api/", "getServers", None, "", "abc")
            == f"https://lb/scalelite/api/getServers?checksum={checksum}"
        )

    def test_params_sorted_before_checksum(self):
        checksum = hashlib.sha1(b"getServersa=1&b=2abc").hexdigest()
        url = signed_url("https://lb/api", "getServers", {"b": 2, "a": 1}, "", "abc")
        assert url == f"https://lb/api/getServers?a=1&b=2&checksum={checksum}"

    def test_body_included(self):
        body = encode_body({"id": "42"})
        checksum = compute_checksum("deleteServer", "", body, "abc")
        assert signed_url("https://lb/api", "deleteServer", None, body, "abc").endswith(checksum)


class TestRedactChecksum:
    def test_redacts(self):
        assert redact_checksum("https://lb/api/getServers?checksum=abc123") == (
            "https://lb/api/getServers?checksum=***"
        )

    def test_no_checksum_unchanged(self):
        assert redact_checksum("https://lb/api/getServers") == "https://lb/api/getServers"
