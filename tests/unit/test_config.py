"""
Unit tests for config.py Pydantic models.

Tests clamping, defaults, immutability and serialization of calculator
inputs, reference-data schema validation and environment settings.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from canfin.config import (
    AppSettings,
    BracketConfig,
    GrantConfig,
    MinimumWithdrawalConfig,
    OASGISInputs,
    RESPConfig,
    RESPInputs,
    RetirementIncomeInputs,
    RRIFInputs,
    SpouseInputs,
    TFSAvsRRSPInputs,
)


class TestRRIFInputs:
    """Tests for RRIFInputs clamping and defaults."""

    def test_defaults(self):
        inputs = RRIFInputs()

        assert inputs.province == "ON"
        assert inputs.current_age is None
        assert inputs.rrif_balance is None
        assert inputs.return_rate == 0.05
        assert inputs.projection_end_age == 90
        assert inputs.tax_year == 2025
        assert inputs.use_spouse_age is False

    def test_negative_amounts_clamped(self):
        inputs = RRIFInputs(rrif_balance=-10, other_income=-1, cpp_monthly=-5)

        assert inputs.rrif_balance == 0.0
        assert inputs.other_income == 0.0
        assert inputs.cpp_monthly == 0.0

    def test_ages_clamped(self):
        assert RRIFInputs(current_age=150).current_age == 120
        assert RRIFInputs(current_age=-3).current_age == 0

    def test_rate_clamped(self):
        assert RRIFInputs(return_rate=3.0).return_rate == 1.0
        assert RRIFInputs(return_rate=-2.0).return_rate == -1.0

    def test_province_uppercased(self):
        assert RRIFInputs(province="bc").province == "BC"

    def test_province_length(self):
        with pytest.raises(ValidationError):
            RRIFInputs(province="Ontario")

    def test_projection_end_age_choices(self):
        assert RRIFInputs(projection_end_age=95).projection_end_age == 95
        with pytest.raises(ValidationError):
            RRIFInputs(projection_end_age=92)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            RRIFInputs(balance=100)

    def test_immutable(self):
        inputs = RRIFInputs(current_age=71)
        with pytest.raises(ValidationError):
            inputs.current_age = 72

    def test_json_roundtrip(self):
        inputs = RRIFInputs(current_age=71, rrif_balance=500_000, province="QC")
        restored = RRIFInputs.model_validate_json(inputs.model_dump_json())

        assert restored == inputs


class TestOtherInputs:
    """Tests for the remaining calculator inputs."""

    def test_retirement_defaults(self):
        inputs = RetirementIncomeInputs()

        assert inputs.end_age == 95
        assert inputs.inflation_rate == 0.025
        assert inputs.cpp_start_age == 65
        assert inputs.spouse is None

    def test_retirement_nested_spouse(self):
        inputs = RetirementIncomeInputs.model_validate(
            {"current_age": 60, "retirement_age": 65, "spouse": {"age": 58, "cpp_monthly": -1}}
        )

        assert isinstance(inputs.spouse, SpouseInputs)
        assert inputs.spouse.age == 58
        assert inputs.spouse.cpp_monthly == 0.0

    def test_resp_defaults(self):
        inputs = RESPInputs()

        assert inputs.return_rate == 0.06
        assert inputs.use_monthly is False

    def test_tfsa_rrsp_defaults(self):
        inputs = TFSAvsRRSPInputs()

        assert inputs.return_rate == 0.07
        assert inputs.years == 25
        assert inputs.retirement_rate is None

    def test_tfsa_rrsp_clamping(self):
        assert TFSAvsRRSPInputs(years=-5).years == 0
        assert TFSAvsRRSPInputs(retirement_rate=-0.1).retirement_rate == 0.0

    def test_oas_gis_status(self):
        assert OASGISInputs().marital_status == "single"
        with pytest.raises(ValidationError):
            OASGISInputs(marital_status="married")

    def test_oas_gis_zero_income_kept(self):
        assert OASGISInputs(net_income=0).net_income == 0.0


class TestReferenceSchema:
    """Tests for reference data schema models."""

    def test_bracket_rate_range(self):
        BracketConfig(upper=50_000, rate=0.15)
        with pytest.raises(ValidationError):
            BracketConfig(upper=50_000, rate=1.2)

    def test_bracket_upper_positive(self):
        with pytest.raises(ValidationError):
            BracketConfig(upper=0, rate=0.15)

    def test_minimum_factors_in_range(self):
        MinimumWithdrawalConfig(factors={71: 0.0528})
        with pytest.raises(ValidationError, match="factors"):
            MinimumWithdrawalConfig(factors={71: 1.5})

    def test_grant_province_length(self):
        with pytest.raises(ValidationError):
            GrantConfig(name="QESI", province="Quebec")

    def test_resp_duplicate_grants(self):
        grant = GrantConfig(name="CESG", rate=0.2)
        with pytest.raises(ValidationError, match="unique"):
            RESPConfig(
                grants=[grant, grant],
                lifetime_contribution_limit=50_000,
                contribution_end_age=18,
                annual_education_cost=20_000,
                education_years=4,
            )


class TestAppSettings:
    """Tests for AppSettings with environment variables."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        """Isolate from the caller's environment and any local .env file."""
        for name in ("CANFIN_LOG_LEVEL", "CANFIN_TAX_YEAR", "CANFIN_PROVINCE", "CANFIN_DATA_DIR"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

    def test_defaults(self):
        settings = AppSettings()

        assert settings.log_level == "WARNING"
        assert settings.tax_year == 2025
        assert settings.province == "ON"
        assert settings.data_dir is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CANFIN_PROVINCE", "BC")
        monkeypatch.setenv("CANFIN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("CANFIN_DATA_DIR", str(tmp_path))

        settings = AppSettings()

        assert settings.province == "BC"
        assert settings.log_level == "DEBUG"
        assert settings.data_dir == Path(tmp_path)

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("CANFIN_TAX_YEAR=2026\n")
        assert AppSettings().tax_year == 2026

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("CANFIN_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            AppSettings()
