"""
Tests for helper script fetching (xtask/install.py).
"""

import os
import urllib.error

import pytest
from unittest.mock import MagicMock, patch

from xtask.errors import FetchError
from xtask.install import HELPER_SCRIPTS, fetch_helper_script, http_get


class TestHttpGet:
    """Tests for http_get."""

    def test_returns_body(self):
        """The response body is returned as bytes."""
        response = MagicMock()
        response.read.return_value = b"#!/usr/bin/env python\n"
        response.__enter__.return_value = response
        with patch("urllib.request.urlopen", return_value=response) as mock_open:
            assert http_get("https://example.invalid/x.py") == b"#!/usr/bin/env python\n"
        request = mock_open.call_args[0][0]
        assert request.get_header("User-agent").startswith("xtask/")

    def test_network_error(self):
        """Network failures become FetchError."""
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("offline")):
            with pytest.raises(FetchError, match="failed to download"):
                http_get("https://example.invalid/x.py")


class TestFetchHelperScript:
    """Tests for fetch_helper_script."""

    def test_known_scripts(self):
        """run-clang-format.py has a download location."""
        assert HELPER_SCRIPTS["run-clang-format.py"].endswith("/run-clang-format.py")

    def test_writes_executable_script(self, config):
        """The script is written into the bin directory and made executable."""
        url = HELPER_SCRIPTS["run-clang-format.py"]
        with patch("xtask.install.http_get", return_value=b"print('hi')\n") as mock_get:
            target = fetch_helper_script(config, url, "run-clang-format.py")
        mock_get.assert_called_once_with(url)
        assert target == config.bin_path / "run-clang-format.py"
        assert target.read_bytes() == b"print('hi')\n"
        assert os.access(target, os.X_OK)

    def test_explicit_root(self, config, tmp_path):
        """An explicit root overrides the config's root."""
        other = tmp_path / "other"
        with patch("xtask.install.http_get", return_value=b"x"):
            target = fetch_helper_script(config, "https://example.invalid/s.py", "s.py", root=other)
        assert target == other / ".xtask/bin" / "s.py"
        assert target.exists()

    def test_download_failure_writes_nothing(self, config):
        """A failed download leaves no partial file."""
        with patch("xtask.install.http_get", side_effect=FetchError("failed to download")):
            with pytest.raises(FetchError):
                fetch_helper_script(config, "https://example.invalid/s.py", "s.py")
        assert not (config.bin_path / "s.py").exists()
