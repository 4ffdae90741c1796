import pytest

from inspector.app.collectors.page_target import (
    LOCAL_FILE_DOMAIN,
    UNKNOWN_DOMAIN,
    UnsupportedPageError,
    extract_domain,
    resolve_page_target,
)


def test_http_page_resolves_hostname():
    target = resolve_page_target("https://www.example.com/news/article?id=1")

    assert target.domain == "www.example.com"
    assert target.is_local_file is False
    assert target.fetch_ads_txt is True


def test_port_and_userinfo_are_not_part_of_domain():
    assert extract_domain("http://user:pw@example.com:8080/") == "example.com"


def test_local_file_skips_ads_txt():
    target = resolve_page_target("file:///home/dev/prebid-test.html")

    assert target.domain == LOCAL_FILE_DOMAIN
    assert target.is_local_file is True
    assert target.fetch_ads_txt is False
    assert target.ads_txt_skip_reason == "Skipped for local file"


@pytest.mark.parametrize(
    "url",
    [
        "chrome://extensions",
        "about:blank",
        "chrome-extension://abcdef/popup.html",
        "edge://settings",
    ],
)
def test_browser_internal_pages_are_rejected(url):
    with pytest.raises(UnsupportedPageError, match="browser internal pages"):
        resolve_page_target(url)


def test_url_without_hostname_resolves_to_unknown():
    target = resolve_page_target("not a url")

    assert target.domain == UNKNOWN_DOMAIN
    assert target.fetch_ads_txt is False


def test_unparseable_url_does_not_raise():
    assert extract_domain("http://[::1") is None
