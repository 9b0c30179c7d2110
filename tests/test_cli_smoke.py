"""
CLI smoke tests against the in-memory OSS server.

Tests command wiring, output formats and exit codes without a real
endpoint. The HTTP factory is patched to route through FakeOSS.
"""
from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from oss_transport.cli import app
from oss_transport.http import HTTP

from tests.helpers.fake_oss import FIXED_TIME, FakeOSS

DATE = "Fri, 30 Oct 2015 07:21:00 GMT"


@pytest.fixture
def oss_env(monkeypatch):
    monkeypatch.setenv("OSS_ENDPOINT", "http://oss.example.com")
    monkeypatch.setenv("OSS_ACCESS_KEY_ID", "test-id")
    monkeypatch.setenv("OSS_ACCESS_KEY_SECRET", "helloworld")


@pytest.fixture
def fake_cli(oss_env):
    """Yields the FakeOSS every CLI command talks to."""
    fake = FakeOSS("oss.example.com", access_key_id="test-id", secret="helloworld")

    def make_http(settings):
        return HTTP(settings, transport=fake.transport(), clock=lambda: FIXED_TIME)

    with patch("oss_transport.cli._make_http", make_http):
        yield fake


class TestCLISmokeTests:
    """Smoke tests for CLI commands."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()

    def test_put_and_get_to_file(self, fake_cli, tmp_path):
        source = tmp_path / "notes.txt"
        source.write_bytes(b"some notes")

        result = self.runner.invoke(app, ["put", "b", "notes.txt", str(source)])
        assert result.exit_code == 0
        assert f"Uploaded {source} to b/notes.txt" in result.output
        assert "ETag:" in result.output
        assert fake_cli.objects[("b", "notes.txt")] == (b"some notes", "text/plain")

        target = tmp_path / "copy.txt"
        result = self.runner.invoke(app, ["get", "b", "notes.txt", "--output", str(target)])
        assert result.exit_code == 0
        assert target.read_bytes() == b"some notes"
        assert f"Downloaded b/notes.txt to {target}" in result.output

    def test_get_to_stdout(self, fake_cli):
        fake_cli.objects[("b", "k")] = (b"raw bytes", "application/octet-stream")
        result = self.runner.invoke(app, ["get", "b", "k"])
        assert result.exit_code == 0
        assert result.stdout_bytes == b"raw bytes"

    def test_put_streamed(self, fake_cli, tmp_path):
        source = tmp_path / "big.bin"
        source.write_bytes(b"x" * 100_000)

        result = self.runner.invoke(app, ["put", "b", "big.bin", str(source), "--stream",
                                          "--content-type", "application/x-test"])
        assert result.exit_code == 0
        assert fake_cli.objects[("b", "big.bin")] == (b"x" * 100_000, "application/x-test")
        assert fake_cli.last_request.headers["Transfer-Encoding"] == "chunked"

    def test_put_missing_file(self, fake_cli, tmp_path):
        result = self.runner.invoke(app, ["put", "b", "k", str(tmp_path / "absent")])
        assert result.exit_code == 2
        assert "Not a file" in result.output

    def test_head_and_delete(self, fake_cli):
        fake_cli.objects[("b", "k")] = (b"abc", "text/plain")

        result = self.runner.invoke(app, ["head", "b", "k"])
        assert result.exit_code == 0
        assert "content-length: 3" in result.output.lower()
        assert "x-oss-request-id: req-1" in result.output.lower()

        result = self.runner.invoke(app, ["delete", "b", "k"])
        assert result.exit_code == 0
        assert "Deleted b/k" in result.output
        assert ("b", "k") not in fake_cli.objects

    def test_missing_object_exit_code(self, fake_cli):
        result = self.runner.invoke(app, ["get", "b", "missing"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "Request id: req-1" in result.output

    def test_access_denied_exit_code(self, fake_cli):
        fake_cli.secret = "different"
        result = self.runner.invoke(app, ["head", "b", "k"])
        assert result.exit_code == 5

    def test_missing_endpoint(self, monkeypatch):
        result = self.runner.invoke(app, ["delete", "b", "k"])
        assert result.exit_code == 2
        assert "OSS_ENDPOINT" in result.output


class TestSignCommand:
    """The sign command prints the string to sign and the Authorization header."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_service_resource(self, oss_env):
        result = self.runner.invoke(app, ["sign", "GET", "--date", DATE])
        assert result.exit_code == 0
        assert result.stdout == (
            f"GET\n\napplication/octet-stream\n{DATE}\n/\n"
            "---\n"
            "Authorization: OSS test-id:wLv3Lmm/vWAMsvpWa6lU3+x3wAo=\n"
        )

    def test_object_with_sub_resource(self, oss_env):
        result = self.runner.invoke(app, ["sign", "get", "--bucket", "b", "--key", "k",
                                          "--sub-res", "acl", "--date", DATE])
        assert result.exit_code == 0
        assert f"GET\n\napplication/octet-stream\n{DATE}\n/b/k?acl\n" in result.stdout
        assert "Authorization: OSS test-id:CzbSaWpVb03N2yqVEgHwvMbyEhg=" in result.stdout

    def test_without_credentials(self, monkeypatch):
        monkeypatch.setenv("OSS_ENDPOINT", "oss.example.com")
        result = self.runner.invoke(app, ["sign", "PUT", "--bucket", "b"])
        assert result.exit_code == 0
        assert "Signing skipped: no credentials configured" in result.stdout

    def test_invalid_verb(self, oss_env):
        result = self.runner.invoke(app, ["sign", "PATCH"])
        assert result.exit_code == 2
        assert "Unsupported HTTP verb" in result.output
