import pytest

from subprobe.scanner.normalization import ProbeTarget, parse_target


@pytest.mark.parametrize("raw, expected", [
    ("www.example.com", ProbeTarget("www.example.com")),
    ("  WWW.Example.COM.  ", ProbeTarget("www.example.com")),
    ("http://a.example.com/some/path?q=1", ProbeTarget("a.example.com", scheme="http")),
    ("HTTPS://a.example.com", ProbeTarget("a.example.com", scheme="https")),
    ("api.example.com:8443", ProbeTarget("api.example.com", port=8443)),
    ("_dmarc.example.com", ProbeTarget("_dmarc.example.com")),
    ("intranet", ProbeTarget("intranet")),
    ("127.0.0.1:8080", ProbeTarget("127.0.0.1", port=8080)),
    ("münchen.example.com", ProbeTarget("xn--mnchen-3ya.example.com")),
    ("example.com/login?next=https://x/", ProbeTarget("example.com")),
    ("http://a.example.com/r?to=https://b/", ProbeTarget("a.example.com", scheme="http")),
])
def test_valid_targets(raw, expected):
    assert parse_target(raw) == expected


@pytest.mark.parametrize("raw", [
    "",
    "   ",
    None,
    "bad!!domain",
    "ftp://files.example.com",
    "-leading.example.com",
    "trailing-.example.com",
    "a..b.example.com",
    "host.example.com:99999",
    "host.example.com:0",
    "host.example.com:abc",
    "with space.example.com",
    "user:pass@example.com",
    "x" * 64 + ".example.com",
])
def test_invalid_targets(raw):
    assert parse_target(raw) is None


def test_scheme_order_without_explicit_scheme():
    assert parse_target("a.example.com").schemes() == ["https", "http"]


def test_explicit_scheme_disables_fallback():
    assert parse_target("http://a.example.com").schemes() == ["http"]


def test_url_includes_port_and_brackets_ipv6():
    assert parse_target("a.example.com:8080").url("http") == "http://a.example.com:8080/"
    assert parse_target("http://[::1]:8080").url() == "http://[::1]:8080/"
