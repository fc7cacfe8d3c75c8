import pytest
from typer.testing import CliRunner

from tallyview import cli
from tallyview.fetcher import AccessDeniedError
from tallyview.schemas import parse_election_details

runner = CliRunner()


class StubFetcher:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        return None

    def fetch_election(self, election_id):
        if self.error is not None:
            raise self.error
        return parse_election_details(self.payload)


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    monkeypatch.setenv("API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "0.01")
    return tmp_path


def _use_fetcher(monkeypatch, fetcher):
    monkeypatch.setattr(cli, "_build_fetcher", lambda settings: fetcher)


def test_results_prints_ranking_and_winners(monkeypatch, cli_env, election_payload):
    """Español: Función test_results_prints_ranking_and_winners del módulo tests/test_cli.py.

    English: Function test_results_prints_ranking_and_winners defined in tests/test_cli.py.
    """
    _use_fetcher(monkeypatch, StubFetcher(election_payload))

    result = runner.invoke(cli.app, ["results", "7"])

    assert result.exit_code == 0, result.output
    assert "Student Council 2024" in result.output
    assert "Turnout: 80.00% (80/100)" in result.output
    assert "1. Cruz, Juan (Alpha): 40 votes, 40.00%  [WINNER]" in result.output
    assert "President: Cruz, Juan" in result.output


def test_results_exits_with_error_on_fetch_failure(monkeypatch, cli_env):
    _use_fetcher(
        monkeypatch,
        StubFetcher(error=AccessDeniedError("Access denied", status_code=403, retryable=False)),
    )

    result = runner.invoke(cli.app, ["results", "7"])

    assert result.exit_code == 1
    assert "Access denied" in result.output


def test_export_csv_writes_file(monkeypatch, cli_env, election_payload):
    _use_fetcher(monkeypatch, StubFetcher(election_payload))
    destination = cli_env / "out" / "results.csv"

    result = runner.invoke(cli.app, ["export", "7", "--format", "csv", "--output", str(destination)])

    assert result.exit_code == 0, result.output
    content = destination.read_text(encoding="utf-8")
    assert content.startswith("position_name,candidate_name,party")
    assert "Winner" in content


def test_export_pdf_writes_file(monkeypatch, cli_env, election_payload):
    _use_fetcher(monkeypatch, StubFetcher(election_payload))
    destination = cli_env / "results.pdf"

    result = runner.invoke(cli.app, ["export", "7", "--format", "pdf", "-o", str(destination)])

    assert result.exit_code == 0, result.output
    assert destination.read_bytes().startswith(b"%PDF")


def test_live_runs_for_requested_ticks(monkeypatch, cli_env, election_payload):
    _use_fetcher(monkeypatch, StubFetcher(election_payload))

    result = runner.invoke(cli.app, ["live", "7", "--ticks", "2"])

    assert result.exit_code == 0, result.output
    assert "[80.00%] President: Cruz, Juan" in result.output


def test_invalid_configuration_exits(monkeypatch, tmp_path):
    monkeypatch.delenv("API_BASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(cli.app, ["results", "7"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
