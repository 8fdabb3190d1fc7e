"""Unit tests for the ``storefront`` CLI commands that need no database."""

from click.testing import CliRunner

from storefront import __version__
from storefront.cli import _format_exp, cli
from tests.factories.tokens import build_token

FAR_FUTURE = 4_102_444_800  # 2100-01-01


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_check_token_valid():
    token = build_token({"userId": 7, "username": "asha", "role": "admin", "exp": FAR_FUTURE})

    result = CliRunner().invoke(cli, ["check-token", token])

    assert result.exit_code == 0
    assert "yes" in result.output
    assert "asha" in result.output
    assert "2100-01-01" in result.output


def test_check_token_expired():
    token = build_token({"userId": 7, "exp": 1})

    result = CliRunner().invoke(cli, ["check-token", token])

    assert result.exit_code == 1
    assert "expired" in result.output


def test_check_token_malformed():
    result = CliRunner().invoke(cli, ["check-token", "not-a-token"])

    assert result.exit_code == 1
    assert "invalid_structure" in result.output


def test_format_exp():
    assert _format_exp(0) == "1970-01-01T00:00:00+00:00"
    assert _format_exp("soon") is None
    assert _format_exp(True) is None
