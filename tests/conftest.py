"""Shared test fixtures for survey risk analysis tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "HRA_HOST",
        "HRA_PORT",
        "HRA_ALLOW_INSECURE_BIND",
        "HRA_EXPOSE_ERROR_DETAILS",
        "HRA_MIN_CONFIDENCE",
        "HRA_MAX_MISSING_PERCENTAGE",
        "HRA_AGE_MIN",
        "HRA_AGE_MAX",
        "HRA_BMI_MIN",
        "HRA_BMI_MAX",
        "HRA_SLEEP_MIN",
        "HRA_SLEEP_MAX",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the settings under test.
    monkeypatch.chdir(Path(__file__).resolve().parent)

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from hra.core.schema.registry import SchemaRegistry  # noqa: E402
from hra.domains.survey.domain_logic.survey_models import (  # noqa: E402
    DEFAULT_GUARDRAIL_CONFIG,
    GuardrailConfig,
)
from hra.domains.survey.domain_logic.survey_schemas import get_schema_registry  # noqa: E402


# ---------------------------------------------------------------------------
# Survey samples
# ---------------------------------------------------------------------------

HIGH_RISK_SURVEY: dict[str, Any] = {
    "age": 45,
    "smoker": True,
    "exercise": "rarely",
    "diet": "high sugar",
}

LOW_RISK_SURVEY: dict[str, Any] = {
    "age": 25,
    "smoker": False,
    "exercise": "regularly",
    "diet": "healthy",
}

OCR_SURVEY_TEXT = "Age: 42\nSmoker: yes\nExercise: rarely\nDiet: high sugar"


@pytest.fixture
def high_risk_survey() -> dict[str, Any]:
    return dict(HIGH_RISK_SURVEY)


@pytest.fixture
def low_risk_survey() -> dict[str, Any]:
    return dict(LOW_RISK_SURVEY)


@pytest.fixture
def ocr_text() -> str:
    return OCR_SURVEY_TEXT


@pytest.fixture
def guardrail_config() -> GuardrailConfig:
    return DEFAULT_GUARDRAIL_CONFIG


@pytest.fixture
def schema_registry() -> SchemaRegistry:
    """The packaged response schemas."""
    return get_schema_registry()
