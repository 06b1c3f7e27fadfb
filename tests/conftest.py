"""Shared test fixtures for the credibility ledger."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from credibility.models import GeneratedExcuse, Profile, UsageRecord  # noqa: E402
from settings.config_models import RetryConfig  # noqa: E402
from shared_types import Category  # noqa: E402


def _make_excuse(category=Category.WORK, text="Stuck on a call", plausibility=0.7):
    return GeneratedExcuse(
        excuse=text,
        base_plausibility=plausibility,
        category=category,
        reasoning="test",
    )


def _make_record(category=Category.WORK, was_true=False, **kwargs):
    data = {
        "category": category,
        "context": f"{category} excuse",
        "confidence_when_used": 0.6,
        "was_true": was_true,
        "credibility_impact": 0.06 if was_true else -0.12,
    }
    data.update(kwargs)
    return UsageRecord(**data)


@pytest.fixture
def make_excuse():
    return _make_excuse


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def fresh_profile():
    return Profile.initial()


@pytest.fixture
def ledger_db(tmp_path):
    return tmp_path / "ledger.db"


@pytest.fixture
def no_retry():
    """Retry config that fails fast."""
    return RetryConfig(max_attempts=1, min_wait=0, llm_max_wait=0)


@pytest.fixture
def llm_provider():
    """Mock provider returning a well-formed excuse."""
    provider = MagicMock()
    provider.provider_name = "mock"
    provider.generate.return_value = json.dumps(
        {
            "excuse": "My laptop died mid-upload.",
            "basePlausibility": 0.72,
            "category": "tech",
            "reasoning": "Tech failures are common and hard to verify.",
        }
    )
    return provider
