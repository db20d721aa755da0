from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from dictfind.cli import cli


def test_resolve_lists_endpoints():
    urls = ["https://dict-a/query", "https://dict-b/query"]
    with patch("dictfind.cli.resolve_dictionary", AsyncMock(return_value=urls)) as resolve:
        result = CliRunner().invoke(cli, ["resolve", "--family", "ethereum", "--chain-id", "1"])

    assert result.exit_code == 0, result.output
    assert "https://dict-b/query" in result.output
    assert resolve.await_args.args[:2] == ("ethereum", "1")


def test_probe_without_endpoints_or_registry_fails():
    result = CliRunner().invoke(cli, ["probe", "--chain-id", "1", "--no-registry"])

    assert result.exit_code != 0
    assert "registry lookup is disabled" in result.output
