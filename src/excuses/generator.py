"""Excuse generation through a pluggable LLM provider."""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

import structlog
from pydantic import ValidationError

from credibility.models import CustomTemplate, GeneratedExcuse, Profile, UsageRecord
from credibility.rules import DEFAULT_RULES, ScoringRules
from llm import LLMError, LLMProvider, LLMRateLimitError
from settings.config_models import GenerationConfig, RetryConfig
from settings.retry import retry_from_config
from shared_types import FICTIONAL_CATEGORIES, RiskTolerance, Tone

from .prompts import (
    GENERATION_PROMPT,
    GENERATION_SYSTEM,
    NO_TEMPLATES,
    REFLECTION_PROMPT,
    REFLECTION_SYSTEM,
)

logger = structlog.get_logger()


class GenerationError(Exception):
    """The provider failed or returned an unusable excuse."""


def effective_risk_tolerance(
    profile: Profile, requested: RiskTolerance, rules: ScoringRules = DEFAULT_RULES
) -> RiskTolerance:
    """Bankrupt profiles (credibility below the threshold) are locked to low risk."""
    if profile.overall_credibility < rules.bankruptcy_threshold:
        return RiskTolerance.LOW
    return RiskTolerance(requested)


@dataclass(frozen=True)
class GenerationRequest:
    context: str
    audience: str
    tone: Tone = Tone.CASUAL
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM

    @classmethod
    def for_profile(
        cls,
        profile: Profile,
        context: str,
        audience: str,
        tone: Tone = Tone.CASUAL,
        risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM,
        rules: ScoringRules = DEFAULT_RULES,
    ) -> "GenerationRequest":
        return cls(
            context=context,
            audience=audience,
            tone=Tone(tone),
            risk_tolerance=effective_risk_tolerance(profile, risk_tolerance, rules),
        )


def parse_excuse(response: str) -> GeneratedExcuse:
    """Parse the provider's JSON answer. Raises GenerationError if unusable."""
    text = response.strip()
    # Strip markdown fences if present
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("excuse_parse_failed", response=text[:200])
        raise GenerationError(f"Provider returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError(f"Expected a JSON object, got {type(data).__name__}")
    if isinstance(data.get("category"), str):
        data["category"] = data["category"].strip().lower()

    try:
        return GeneratedExcuse.model_validate(data)
    except ValidationError as e:
        logger.warning("excuse_validation_failed", errors=e.error_count())
        raise GenerationError(f"Provider returned a malformed excuse: {e}") from e


class ExcuseGenerator:
    """Builds prompts from the ledger state and asks the LLM for one excuse."""

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        config: Optional[GenerationConfig] = None,
        retry: Optional[RetryConfig] = None,
        rules: ScoringRules = DEFAULT_RULES,
        max_tokens: int = 1000,
    ):
        self._provider = provider
        self.config = config or GenerationConfig()
        self.rules = rules
        self.max_tokens = max_tokens
        self._call_llm = retry_from_config(retry or RetryConfig(), (LLMRateLimitError,))(
            self._call_llm_once
        )

    def _get_provider(self) -> LLMProvider:
        if self._provider is None:
            from llm.factory import create_llm_provider

            self._provider = create_llm_provider()
        return self._provider

    def _call_llm_once(self, system: str, prompt: str, json_mode: bool) -> str:
        provider = self._get_provider()
        logger.debug("llm_call", provider=provider.provider_name, json_mode=json_mode)
        return provider.generate(
            messages=[{"role": "user", "content": prompt}],
            system=system,
            max_tokens=self.max_tokens,
            json_mode=json_mode,
        )

    def build_prompt(
        self,
        request: GenerationRequest,
        profile: Profile,
        history: Sequence[UsageRecord],
        templates: Sequence[CustomTemplate],
    ) -> str:
        recent = history[-self.config.history_context :] if self.config.history_context else []
        history_summary = ", ".join(f"{r.category}: {r.context}" for r in recent)
        if templates:
            templates_summary = "User Preferred Templates: " + "; ".join(
                f"[{t.category}] {t.text}" for t in templates
            )
        else:
            templates_summary = NO_TEMPLATES

        return GENERATION_PROMPT.format(
            context=request.context[: self.config.context_max_chars],
            audience=request.audience,
            tone=request.tone,
            risk_tolerance=effective_risk_tolerance(profile, request.risk_tolerance, self.rules),
            credibility=round(profile.overall_credibility, 3),
            overused=", ".join(sorted(profile.overused_categories)),
            history=history_summary,
            templates=templates_summary,
        )

    def generate(
        self,
        request: GenerationRequest,
        profile: Profile,
        history: Sequence[UsageRecord],
        templates: Sequence[CustomTemplate] = (),
    ) -> GeneratedExcuse:
        """Ask the provider for one excuse.

        Raises:
            GenerationError: provider failure or malformed response
        """
        system = GENERATION_SYSTEM.format(categories=", ".join(FICTIONAL_CATEGORIES))
        prompt = self.build_prompt(request, profile, history, templates)
        try:
            response = self._call_llm(system, prompt, True)
        except LLMError as e:
            logger.error("excuse_generation_failed", error=str(e))
            raise GenerationError(str(e)) from e

        excuse = parse_excuse(response)
        logger.info(
            "excuse_generated",
            category=str(excuse.category),
            plausibility=excuse.base_plausibility,
        )
        return excuse

    def analyze_reflection(self, record: UsageRecord) -> str:
        """Two-sentence ethical insight on a reflected record."""
        prompt = REFLECTION_PROMPT.format(
            excuse=record.context,
            outcome=record.outcome or "unknown",
            was_true="Yes" if record.was_true else "No",
            notes=record.reflection_notes or "",
        )
        try:
            return self._call_llm(REFLECTION_SYSTEM, prompt, False).strip()
        except LLMError as e:
            logger.error("reflection_insight_failed", record_id=record.id, error=str(e))
            raise GenerationError(str(e)) from e
