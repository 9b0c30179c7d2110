"""
Tests for the canonical request representation.

The string to sign must match the service byte for byte, so these tests pin
ordering, case handling and sub-resource rendering.
"""
from __future__ import annotations

import pytest

from oss_transport.canonical import (
    canonical_headers,
    canonical_resource,
    canonical_string,
    query_string,
    request_url,
    resource_path,
)

DATE = "Fri, 30 Oct 2015 07:21:00 GMT"


class TestResourcePath:
    """Test resource path derivation."""

    def test_no_bucket(self):
        assert resource_path(None, None) == "/"

    def test_bucket_only_keeps_trailing_slash(self):
        assert resource_path("bucket", None) == "/bucket/"

    def test_object_key_not_escaped(self):
        assert resource_path("bucket", "dir/my file+1.txt") == "/bucket/dir/my file+1.txt"

    def test_key_without_bucket_raises(self):
        with pytest.raises(ValueError, match="requires a bucket"):
            resource_path(None, "key")


class TestCanonicalString:
    """Test string-to-sign construction."""

    def test_documented_example_layout(self):
        """Layout of the service documentation's PUT example."""
        headers = {
            "Content-MD5": "ODBGOERFMDMzQTczRUY3NUE3NzA5QzdFNUYzMDQxNEM=",
            "Content-Type": "text/html",
            "Date": "Thu, 17 Nov 2005 18:49:58 GMT",
            "X-OSS-Meta-Author": "foo@bar.com",
            "X-OSS-Magic": "abracadabra",
        }
        expected = (
            "PUT\n"
            "ODBGOERFMDMzQTczRUY3NUE3NzA5QzdFNUYzMDQxNEM=\n"
            "text/html\n"
            "Thu, 17 Nov 2005 18:49:58 GMT\n"
            "x-oss-magic:abracadabra\n"
            "x-oss-meta-author:foo@bar.com\n"
            "/oss-example/nelson"
        )
        assert canonical_string("PUT", headers, "/oss-example/nelson") == expected

    def test_missing_headers_give_empty_lines(self):
        assert canonical_string("GET", {"Date": DATE}, "/") == f"GET\n\n\n{DATE}\n/"

    def test_header_lookup_is_case_insensitive(self):
        lower = canonical_string("GET", {"content-type": "text/plain", "date": DATE}, "/b/")
        upper = canonical_string("GET", {"Content-Type": "text/plain", "Date": DATE}, "/b/")
        assert lower == upper

    def test_verb_upper_cased(self):
        assert canonical_string("get", {"Date": DATE}, "/").startswith("GET\n")

    def test_deterministic(self):
        """Same inputs at the same instant give byte-identical output."""
        headers = {"Date": DATE, "x-oss-meta-b": "2", "x-oss-meta-a": "1", "Content-Type": "a/b"}
        sub_res = {"uploads": None, "acl": None}
        first = canonical_string("POST", headers, "/b/k", sub_res)
        second = canonical_string("POST", dict(reversed(list(headers.items()))), "/b/k", dict(sub_res))
        assert first == second

    def test_non_vendor_headers_ignored(self):
        with_extra = canonical_string("GET", {"Date": DATE, "Cache-Control": "no-cache"}, "/")
        assert with_extra == canonical_string("GET", {"Date": DATE}, "/")


class TestCanonicalHeaders:
    """Test vendor header selection."""

    def test_sorted_lowercased_and_stripped(self):
        headers = {"X-Oss-Meta-Z": " last ", "x-oss-meta-a": "first", "Content-Length": "3"}
        assert canonical_headers(headers) == "x-oss-meta-a:first\nx-oss-meta-z:last\n"

    def test_security_token_included(self):
        assert canonical_headers({"x-oss-security-token": "tok"}) == "x-oss-security-token:tok\n"

    def test_no_vendor_headers(self):
        assert canonical_headers({"Date": DATE}) == ""


class TestCanonicalResource:
    """Test sub-resource rendering."""

    def test_no_sub_resources(self):
        assert canonical_resource("/b/k", {}) == "/b/k"
        assert canonical_resource("/b/k", None) == "/b/k"

    def test_sorted_with_bare_and_valued_keys(self):
        sub_res = {"uploadId": "abc", "partNumber": 3, "acl": None}
        assert canonical_resource("/b/k", sub_res) == "/b/k?acl&partNumber=3&uploadId=abc"

    def test_empty_and_boolean_values_are_bare(self):
        assert canonical_resource("/b/", {"location": "", "acl": True}) == "/b/?acl&location"


class TestRequestUrl:
    """Test URL resolution."""

    def test_virtual_hosted_style(self):
        assert request_url("https://oss.example.com", "bucket", "key") == "https://bucket.oss.example.com/key"

    def test_service_level(self):
        assert request_url("http://oss.example.com", None, None) == "http://oss.example.com/"

    def test_bucket_level(self):
        assert request_url("http://oss.example.com", "bucket", None) == "http://bucket.oss.example.com/"

    def test_cname_skips_bucket_subdomain(self):
        assert request_url("http://files.example.org", "bucket", "k", cname=True) == "http://files.example.org/k"

    def test_key_fully_escaped(self):
        url = request_url("http://oss.example.com", "b", "dir/a b+c.txt")
        assert url == "http://b.oss.example.com/dir%2Fa%20b%2Bc.txt"


class TestQueryString:
    """Test query string merging."""

    def test_sub_resources_then_query(self):
        assert query_string({"acl": None}, {"max-keys": 10}) == "acl&max-keys=10"

    def test_values_url_encoded(self):
        assert query_string({}, {"prefix": "a b/c"}) == "prefix=a+b%2Fc"

    def test_query_overrides_sub_resource(self):
        assert query_string({"position": 0}, {"position": 5}) == "position=5"

    def test_empty(self):
        assert query_string(None, None) == ""
