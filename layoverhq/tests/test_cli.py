import json

import pytest
from click.testing import CliRunner
from conftest import make_offer

from layoverhq import cli as cli_module
from layoverhq.cli import cli
from layoverhq.errors import OfferSearchError
from layoverhq.search import HttpOfferProvider


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch):
    monkeypatch.setenv("LAYOVERHQ_LOG_LEVEL", "WARNING")


@pytest.fixture
def offers_file(tmp_path, doha_connection):
    offers = [make_offer(f"f{i}", total=400.0 + i * 10) for i in range(12)]
    offers.append(make_offer("doha", total=350.0, outbound=doha_connection))
    path = tmp_path / "offers.json"
    path.write_text(json.dumps([o.model_dump(by_alias=True, mode="json") for o in offers]))
    return path


def test_rank_by_price_with_preview(offers_file):
    result = CliRunner().invoke(cli, ["rank", str(offers_file), "--sort", "price"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith(" 1. doha  USD 350.00")
    assert "DOH (3h 30m)" in lines[0]
    assert "Direct" in lines[1]
    assert len(lines) == 11
    assert lines[-1] == "... 3 more (use --all)"


def test_rank_all(offers_file):
    result = CliRunner().invoke(cli, ["rank", str(offers_file), "--all"])
    assert result.exit_code == 0, result.output
    assert len(result.output.splitlines()) == 13


def test_rank_accepts_response_envelope(tmp_path):
    path = tmp_path / "resp.json"
    body = {"success": True, "data": {"flights": [make_offer("x").model_dump(by_alias=True, mode="json")]}}
    path.write_text(json.dumps(body))
    result = CliRunner().invoke(cli, ["rank", str(path)])
    assert result.exit_code == 0, result.output
    assert " 1. x" in result.output


def test_rank_rejects_failed_envelope(tmp_path):
    path = tmp_path / "resp.json"
    path.write_text(json.dumps({"success": False, "error": "boom"}))
    result = CliRunner().invoke(cli, ["rank", str(path)])
    assert result.exit_code != 0
    assert "API error: boom" in result.output


def test_summary_writes_csv(offers_file, tmp_path):
    out = tmp_path / "csv"
    result = CliRunner().invoke(cli, ["summary", str(offers_file), "--csv", str(out)])
    assert result.exit_code == 0, result.output
    assert "Connections by airport" in result.output
    assert "DOH" in result.output
    assert (out / "airports.csv").exists()
    assert (out / "airlines.csv").exists()


def test_guide_with_layover():
    result = CliRunner().invoke(cli, ["guide", "ist", "--layover", "300"])
    assert result.exit_code == 0, result.output
    assert "Istanbul, Turkey (IST)" in result.output
    assert "Minimum time to explore: 6h 0m" in result.output
    assert "5h 0m layover: not enough time" in result.output


def test_guide_unknown_airport():
    result = CliRunner().invoke(cli, ["guide", "zzz"])
    assert result.exit_code == 0, result.output
    assert "Check visa requirements for your nationality" in result.output


def test_search_prints_ranked_offers(monkeypatch, doha_connection):
    async def fake_search(self, criteria):
        assert criteria.trip_type.value == "oneway"
        return [make_offer("a", total=700.0), make_offer("b", total=300.0, outbound=doha_connection)]

    monkeypatch.setattr(HttpOfferProvider, "search", fake_search)
    result = CliRunner().invoke(
        cli, ["search", "los", "atl", "--depart", "2025-08-21", "--sort", "price"]
    )
    assert result.exit_code == 0, result.output
    assert result.output.splitlines()[0].startswith(" 1. b")


def test_search_reports_provider_failure(monkeypatch):
    async def failing(self, criteria):
        raise OfferSearchError("HTTP 503 – down")

    monkeypatch.setattr(HttpOfferProvider, "search", failing)
    result = CliRunner().invoke(
        cli, ["search", "LOS", "ATL", "--depart", "2025-08-21", "--return", "2025-09-01"]
    )
    assert result.exit_code == 1
    assert "retry possible" in result.output


def test_search_empty(monkeypatch):
    async def nothing(self, criteria):
        return []

    monkeypatch.setattr(HttpOfferProvider, "search", nothing)
    result = CliRunner().invoke(cli, ["search", "LOS", "ATL", "--depart", "2025-08-21"])
    assert result.exit_code == 0
    assert "No offers found" in result.output


def test_search_rejects_blank_origin():
    result = CliRunner().invoke(cli, ["search", " ", "ATL", "--depart", "2025-08-21"])
    assert result.exit_code == 2
    assert "origin" in result.output


def test_load_offers_annotates(offers_file):
    offers = cli_module.load_offers(str(offers_file))
    assert offers[-1].layovers[0].duration_minutes == 210
