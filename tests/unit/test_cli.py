"""
Unit tests for CLI module.

Tests command-line interface functionality using Click's testing utilities.
"""

import json

import pytest
from click.testing import CliRunner

from canfin import __version__
from canfin.cli import main
from canfin.reference import DATA_DIR


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run every command with default settings."""
    for name in ("CANFIN_LOG_LEVEL", "CANFIN_TAX_YEAR", "CANFIN_PROVINCE", "CANFIN_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def rrif_inputs_file(tmp_path):
    """RRIF inputs as a JSON file."""
    path = tmp_path / "rrif_inputs.json"
    path.write_text(json.dumps({"current_age": 71, "rrif_balance": 500_000}))
    return path


# ============================================================================
# MAIN GROUP
# ============================================================================

class TestMainGroup:
    """Tests for the main command group."""

    def test_main_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("rrif", "retirement", "resp", "tfsa-vs-rrsp", "oas-gis", "tax", "data"):
            assert command in result.output

    def test_main_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


# ============================================================================
# CALCULATOR COMMANDS
# ============================================================================

class TestRRIFCommand:
    """Tests for 'canfin rrif'."""

    def test_quiet_summary(self, runner):
        result = runner.invoke(main, ["--quiet", "rrif", "--age", "71", "--balance", "500000"])

        assert result.exit_code == 0
        assert "Minimum withdrawal: $26,400" in result.output
        assert "Minimum per month: $2,200" in result.output

    def test_table_output(self, runner):
        result = runner.invoke(main, ["rrif", "--age", "71", "--balance", "500000"])

        assert result.exit_code == 0
        assert "RRIF schedule" in result.output

    def test_spouse_age(self, runner):
        result = runner.invoke(main, ["-q", "rrif", "--age", "71", "--balance", "500000", "--spouse-age", "65"])

        assert result.exit_code == 0
        assert "Minimum withdrawal: $20,000" in result.output

    def test_inputs_file_with_override(self, runner, rrif_inputs_file):
        result = runner.invoke(main, [
            "-q", "rrif", "--inputs", str(rrif_inputs_file), "--balance", "100000",
        ])

        assert result.exit_code == 0
        assert "Minimum withdrawal: $5,280" in result.output

    def test_output_file(self, runner, tmp_path):
        output = tmp_path / "out" / "rrif.json"
        result = runner.invoke(main, [
            "-q", "rrif", "--age", "71", "--balance", "500000", "--output", str(output),
        ])

        assert result.exit_code == 0
        doc = json.loads(output.read_text())
        assert doc["calculator"] == "rrif"
        assert doc["rows"][0]["withdrawal"] == 26_400
        assert doc["inputs"]["current_age"] == 71

    def test_not_enough_information(self, runner):
        result = runner.invoke(main, ["rrif", "--age", "50", "--balance", "500000"])

        assert result.exit_code == 1
        assert "Not enough information" in result.output

    def test_unknown_province(self, runner):
        result = runner.invoke(main, ["rrif", "--age", "71", "--balance", "500000", "-p", "ZZ"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_inputs_file(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"current_age": 71, "balance": 1}))

        result = runner.invoke(main, ["rrif", "--inputs", str(path)])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestRetirementCommand:
    """Tests for 'canfin retirement'."""

    def test_quiet_summary(self, runner):
        result = runner.invoke(main, [
            "-q", "retirement", "--age", "60", "--retire-at", "65",
            "--rrif", "400000", "--cpp", "900", "--oas", "727.67",
        ])

        assert result.exit_code == 0
        assert "RRIF at retirement: $510,513" in result.output
        assert "Net income per month" in result.output

    def test_spouse_splitting(self, runner):
        result = runner.invoke(main, [
            "-q", "retirement", "--age", "65", "--retire-at", "65",
            "--pension", "5000", "--spouse-age", "63",
        ])

        assert result.exit_code == 0
        assert "Pension split: $30,000" in result.output

    def test_not_enough_information(self, runner):
        result = runner.invoke(main, ["retirement", "--age", "60"])

        assert result.exit_code == 1
        assert "Not enough information" in result.output


class TestRESPCommand:
    """Tests for 'canfin resp'."""

    def test_quiet_summary(self, runner):
        result = runner.invoke(main, [
            "-q", "resp", "--child-age", "0", "--annual", "2500", "--return", "0",
        ])

        assert result.exit_code == 0
        assert "Years of contributions: 18" in result.output
        assert "CESG: $7,200" in result.output
        assert "Balance at 18: $52,200" in result.output

    def test_monthly(self, runner):
        result = runner.invoke(main, ["-q", "resp", "--child-age", "10", "--monthly", "200"])

        assert result.exit_code == 0
        assert "Annual contribution: $2,400" in result.output

    def test_not_enough_information(self, runner):
        result = runner.invoke(main, ["resp", "--child-age", "5"])
        assert result.exit_code == 1


class TestTFSAvsRRSPCommand:
    """Tests for 'canfin tfsa-vs-rrsp'."""

    def test_quiet_summary(self, runner):
        result = runner.invoke(main, [
            "-q", "tfsa-vs-rrsp", "--income", "80000", "--contribution", "5000",
        ])

        assert result.exit_code == 0
        assert "Current marginal rate: 29.6%" in result.output or \
            "Current marginal rate: 29.7%" in result.output
        assert "Winner: RRSP" in result.output

    def test_retirement_rate_percent(self, runner):
        result = runner.invoke(main, [
            "-q", "tfsa-vs-rrsp", "--income", "80000", "--contribution", "5000",
            "--retirement-rate", "40",
        ])

        assert result.exit_code == 0
        assert "Retirement rate: 40.0%" in result.output
        assert "Winner: TFSA" in result.output

    def test_not_enough_information(self, runner):
        result = runner.invoke(main, ["tfsa-vs-rrsp", "--income", "80000"])

        assert result.exit_code == 1
        assert "Not enough information" in result.output


class TestOASGISCommand:
    """Tests for 'canfin oas-gis'."""

    def test_quiet_summary(self, runner):
        result = runner.invoke(main, ["-q", "oas-gis", "--age", "66", "--income", "0"])

        assert result.exit_code == 0
        assert "OAS per month: $728" in result.output
        assert "GIS per month: $1,057" in result.output

    def test_deferral_table(self, runner):
        result = runner.invoke(main, ["oas-gis", "--age", "64", "--income", "40000"])

        assert result.exit_code == 0
        assert "OAS deferral" in result.output

    def test_invalid_status(self, runner):
        result = runner.invoke(main, ["oas-gis", "--age", "66", "--income", "0", "--status", "married"])
        assert result.exit_code != 0

    def test_not_enough_information(self, runner):
        result = runner.invoke(main, ["oas-gis", "--age", "66"])
        assert result.exit_code == 1


class TestTaxCommand:
    """Tests for 'canfin tax'."""

    def test_ontario_80k(self, runner):
        result = runner.invoke(main, ["-q", "tax", "80000", "--province", "ON"])

        assert result.exit_code == 0
        assert "Total tax: $15,437" in result.output
        assert "Marginal rate: 29.65%" in result.output

    def test_unknown_province(self, runner):
        result = runner.invoke(main, ["tax", "80000", "--province", "ZZ"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_requires_income(self, runner):
        result = runner.invoke(main, ["tax"])
        assert result.exit_code != 0

    def test_province_from_environment(self, runner, monkeypatch):
        monkeypatch.setenv("CANFIN_PROVINCE", "AB")
        result = runner.invoke(main, ["tax", "80000"])

        assert result.exit_code == 0
        assert "(AB)" in result.output


# ============================================================================
# DATA COMMANDS
# ============================================================================

class TestDataCommands:
    """Tests for 'canfin data'."""

    def test_show_json(self, runner):
        result = runner.invoke(main, ["data", "show", "--province", "ON", "--format", "json"])

        assert result.exit_code == 0
        doc = json.loads(result.output)
        assert doc["tax_year"] == 2025
        assert doc["federal"][0]["rate"] == 0.15
        assert doc["ON"][-1]["upper"] is None

    def test_show_table(self, runner):
        result = runner.invoke(main, ["data", "show", "--province", "BC"])

        assert result.exit_code == 0
        assert "Rate" in result.output
        assert "20.50%" in result.output

    def test_show_quiet(self, runner):
        result = runner.invoke(main, ["-q", "data", "show", "--province", "ON"])

        assert result.exit_code == 0
        assert "2025 ON: 5 federal, 5 provincial brackets" in result.output

    def test_show_unknown_year(self, runner):
        result = runner.invoke(main, ["data", "show", "--year", "1999"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_validate_valid(self, runner):
        result = runner.invoke(main, ["data", "validate", str(DATA_DIR / "tax_2025.json")])

        assert result.exit_code == 0
        assert "Reference data is valid: 2025, 13 provinces/territories" in result.output

    def test_validate_invalid(self, runner, tmp_path):
        path = tmp_path / "tax_2030.json"
        path.write_text(json.dumps({"tax_year": 2030}))

        result = runner.invoke(main, ["data", "validate", str(path)])

        assert result.exit_code == 1
        assert "Reference data validation failed" in result.output

    def test_validate_missing_file(self, runner):
        result = runner.invoke(main, ["data", "validate", "nonexistent.json"])
        assert result.exit_code != 0
