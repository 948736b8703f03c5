"""Tests for group link canonicalization."""

import pytest

from group_scanner_pkg.canonical import canonicalize, group_key, is_target_host


CANONICAL = "https://www.facebook.com/groups/123456789"


class TestCanonicalize:
    """Different spellings of a group link collapse to one URL."""

    @pytest.mark.parametrize(
        "href",
        [
            "/groups/123456789/?ref=abc&__cft__=xyz",
            "/groups/123456789",
            "/groups/123456789/",
            "https://www.facebook.com/groups/123456789/about/",
            "https://www.facebook.com/groups/123456789#top",
            "groups/123456789/",
            "  /groups/123456789/  ",
        ],
    )
    def test_equivalent_spellings(self, href):
        assert canonicalize(href, "https://www.facebook.com/") == CANONICAL

    def test_deterministic(self):
        href = "/groups/123456789/?ref=abc"
        assert canonicalize(href) == canonicalize(href)

    def test_subdomain_keeps_its_origin(self):
        url = canonicalize("https://m.facebook.com/groups/pythonistas/?ref=share")
        assert url == "https://m.facebook.com/groups/pythonistas"

    def test_port_kept(self):
        url = canonicalize("http://localhost.facebook.com:8080/groups/abc", domain="facebook.com")
        assert url == "http://localhost.facebook.com:8080/groups/abc"

    @pytest.mark.parametrize(
        "href",
        [
            "/groups/discover/",
            "/groups/feed/",
            "https://www.facebook.com/groups/joins/?nav_source=tab",
            "/groups/create",
            "/groups/categories/",
            "/groups/browse/foo/",
        ],
    )
    def test_denylisted_slugs_rejected(self, href):
        assert canonicalize(href) is None

    @pytest.mark.parametrize(
        "href",
        [
            "https://example.com/groups/1/",
            "https://notfacebook.com/groups/1/",
            "https://facebook.com.evil.net/groups/1/",
        ],
    )
    def test_foreign_hosts_rejected(self, href):
        assert canonicalize(href) is None

    @pytest.mark.parametrize(
        "href",
        [
            "",
            None,
            "http://[::1",
            "javascript:void(0)",
            "mailto:someone@facebook.com",
            "/groups/",
            "/about",
            "/pages/groups",
        ],
    )
    def test_malformed_or_non_group_links(self, href):
        assert canonicalize(href) is None


class TestGroupKey:
    def test_key_is_slug(self):
        assert group_key(CANONICAL) == "123456789"

    def test_key_ignores_host(self):
        mobile = canonicalize("https://m.facebook.com/groups/123456789/")
        assert group_key(mobile) == group_key(CANONICAL)

    def test_keys_are_case_sensitive(self):
        assert group_key(canonicalize("/groups/MyGroup")) != group_key(canonicalize("/groups/mygroup"))


class TestIsTargetHost:
    def test_exact_and_subdomain(self):
        assert is_target_host("facebook.com")
        assert is_target_host("www.facebook.com")
        assert is_target_host("WEB.FACEBOOK.COM")

    def test_suffix_without_boundary(self):
        assert not is_target_host("notfacebook.com")
        assert not is_target_host("")
