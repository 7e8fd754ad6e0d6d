"""URL scheme 校验与文件名提取测试"""

import pytest

from devenv.core.exceptions import ValidationError
from devenv.utils.net import check_download_url, url_filename


class TestCheckDownloadUrl:
    def test_http_ok(self) -> None:
        check_download_url("http://example.com/rg.tar.gz")

    def test_https_ok(self) -> None:
        parts = check_download_url("HTTPS://example.com/rg.tar.gz")
        assert parts.netloc == "example.com"
        assert parts.path == "/rg.tar.gz"

    def test_file_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            check_download_url("file:///etc/passwd")

    def test_empty_scheme_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            check_download_url("/local/path")

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="download rg"):
            check_download_url("ftp://x/rg", context="download rg")


class TestUrlFilename:
    @pytest.mark.parametrize("url,expected", [
        ("https://e.com/dl/rg-14.tar.gz", "rg-14.tar.gz"),
        ("https://e.com/dl/tool/", "tool"),
        ("https://e.com/dl/rg?token=abc", "rg"),
        ("https://e.com", "fallback"),
        ("https://e.com/", "fallback"),
    ])
    def test_last_segment(self, url: str, expected: str) -> None:
        assert url_filename(url, default="fallback") == expected

    def test_unparsable_url_rejected(self) -> None:
        with pytest.raises(ValidationError, match="无效的下载地址"):
            check_download_url("http://[::1/rg")

    def test_unparsable_url_filename_default(self) -> None:
        assert url_filename("http://[::1/rg", default="fallback") == "fallback"
