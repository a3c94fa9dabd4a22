"""Tests for the image-provider CLI."""

import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from image_provider import __version__
from image_provider.cli import app
from image_provider.downloader import DownloadResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env():
    """Run every command without ambient configuration."""
    with patch.dict(os.environ, {}, clear=True):
        yield


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestKeyCommand:
    """Tests for 'key' command."""

    def test_url(self):
        result = runner.invoke(app, ["key", "https://cdn.example.com/a/b.png"])

        assert result.exit_code == 0
        assert "url" in result.output
        assert "/a/b.png" in result.output

    def test_bucket_path(self):
        result = runner.invoke(app, ["key", "avatars/42.png"])

        assert result.exit_code == 0
        assert "bucket" in result.output
        assert "avatars/42.png" in result.output

    def test_unrecognized(self):
        result = runner.invoke(app, ["key", "not a valid anything!!"])

        assert result.exit_code == 1
        assert "Not a URL or bucket path" in result.output


class TestResolveCommand:
    """Tests for 'resolve' command."""

    def test_direct_url_needs_no_credentials(self):
        result = runner.invoke(app, ["resolve", "https://cdn.example.com/a/b.png"])

        assert result.exit_code == 0
        assert "https://cdn.example.com/a/b.png" in result.output

    def test_bucket_path_without_credentials(self):
        result = runner.invoke(app, ["resolve", "avatars/42.png"])

        assert result.exit_code == 1
        assert "IMAGE_PROVIDER_R2_ACCESS_KEY_ID" in result.output

    def test_bucket_path_signed(self):
        mock_client = MagicMock()
        mock_client.signed_url = AsyncMock(return_value="https://r2.example.com/avatars/42.png?sig=1")

        with patch("image_provider.cli.R2Client") as mock_r2:
            mock_r2.from_settings.return_value = mock_client
            result = runner.invoke(app, ["resolve", "avatars/42.png"])

        assert result.exit_code == 0
        assert "https://r2.example.com/avatars/42.png?sig=1" in result.output
        mock_client.signed_url.assert_awaited_once()

    def test_signing_failure(self):
        mock_client = MagicMock()
        mock_client.signed_url = AsyncMock(side_effect=PermissionError("expired credentials"))

        with patch("image_provider.cli.R2Client") as mock_r2:
            mock_r2.from_settings.return_value = mock_client
            result = runner.invoke(app, ["resolve", "avatars/42.png"])

        assert result.exit_code == 1
        assert "expired credentials" in result.output

    def test_check_existing_object(self):
        mock_client = MagicMock()
        mock_client.object_exists = AsyncMock(return_value=True)
        mock_client.signed_url = AsyncMock(return_value="https://r2.example.com/avatars/42.png?sig=1")

        with patch("image_provider.cli.R2Client") as mock_r2:
            mock_r2.from_settings.return_value = mock_client
            result = runner.invoke(app, ["resolve", "avatars/42.png", "--check"])

        assert result.exit_code == 0
        assert "sig=1" in result.output
        (path,), _ = mock_client.object_exists.await_args
        assert path.key == "avatars/42.png"

    def test_check_missing_object(self):
        """A missing object fails before any URL is signed."""
        mock_client = MagicMock()
        mock_client.object_exists = AsyncMock(return_value=False)
        mock_client.signed_url = AsyncMock()

        with patch("image_provider.cli.R2Client") as mock_r2:
            mock_r2.from_settings.return_value = mock_client
            result = runner.invoke(app, ["resolve", "avatars/missing.png", "--check"])

        assert result.exit_code == 1
        assert "Object not found: avatars/missing.png" in result.output
        mock_client.signed_url.assert_not_awaited()

    def test_check_skipped_for_direct_url(self):
        result = runner.invoke(app, ["resolve", "https://cdn.example.com/a/b.png", "--check"])

        assert result.exit_code == 0
        assert "https://cdn.example.com/a/b.png" in result.output


class TestFetchCommand:
    """Tests for 'fetch' command."""

    def test_saves_image_bytes(self, tmp_path, png_bytes):
        from io import BytesIO

        from PIL import Image

        output = tmp_path / "out" / "b.png"
        download = DownloadResult(
            url="https://cdn.example.com/a/b.png",
            original_data=png_bytes,
            image=Image.open(BytesIO(png_bytes)),
        )

        with patch("image_provider.cli.ImageProvider") as mock_provider:
            mock_provider.return_value.fetch_result = AsyncMock(return_value=download)
            result = runner.invoke(
                app, ["fetch", "https://cdn.example.com/a/b.png", "--output", str(output)]
            )

        assert result.exit_code == 0
        assert output.read_bytes() == png_bytes
        assert "2x3" in result.output

    def test_fetch_failure(self, tmp_path):
        output = tmp_path / "b.png"

        with patch("image_provider.cli.ImageProvider") as mock_provider:
            mock_provider.return_value.fetch_result = AsyncMock(side_effect=RuntimeError("HTTP 404"))
            result = runner.invoke(
                app, ["fetch", "https://cdn.example.com/a/b.png", "-o", str(output)]
            )

        assert result.exit_code == 1
        assert "HTTP 404" in result.output
        assert not output.exists()

    def test_unrecognized(self, tmp_path):
        result = runner.invoke(app, ["fetch", "not a valid anything!!", "-o", str(tmp_path / "x")])

        assert result.exit_code == 1
