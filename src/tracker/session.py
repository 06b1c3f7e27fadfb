"""Credibility session: sequences generation, scoring and persistence."""

import threading
from pathlib import Path
from typing import Optional

import structlog

from credibility import engine
from credibility.errors import RecordNotFound
from credibility.models import CustomTemplate, GeneratedExcuse, Profile, UsageRecord
from credibility.rules import DEFAULT_RULES, ScoringRules
from credibility.summary import LedgerSummary, summarize
from excuses import ExcuseGenerator, GenerationRequest
from ledger import LedgerSnapshot, LedgerStore, default_export_name, export_json, import_json
from shared_types import Category, Outcome, RiskTolerance, Tone

logger = structlog.get_logger()


class CredibilitySession:
    """Single owner of the ledger state for one interactive user.

    Every write runs engine -> store -> in-memory swap under one lock, so the
    engine always sees the latest snapshot. State only advances after the
    store accepted the write; a StorageError leaves the session where it was
    and the same call can be retried.
    """

    def __init__(
        self,
        store: LedgerStore,
        generator: Optional[ExcuseGenerator] = None,
        rules: ScoringRules = DEFAULT_RULES,
        export_dir: Optional[Path] = None,
    ):
        self.store = store
        self.generator = generator
        self.rules = rules
        self.export_dir = Path(export_dir) if export_dir else None
        self._lock = threading.Lock()
        self._state = store.load()
        logger.info(
            "session_opened",
            records=len(self._state.history),
            credibility=self._state.profile.overall_credibility,
        )

    @classmethod
    def open(cls, config=None) -> "CredibilitySession":
        """Build a session from config (loaded from disk when omitted)."""
        from llm import create_llm_provider
        from settings.config import load_config
        from settings.logging_config import setup_logging

        config = config or load_config()
        setup_logging(
            json_mode=config.logging.json_mode,
            level=config.logging.level,
            log_file=config.paths.log_file,
        )
        rules = config.scoring.to_rules()
        provider = create_llm_provider(
            provider=config.llm.provider,
            api_key=config.llm.api_key,
            model=config.llm.model,
        )
        generator = ExcuseGenerator(
            provider=provider,
            config=config.generation,
            retry=config.retry,
            rules=rules,
            max_tokens=config.llm.max_tokens,
        )
        return cls(
            LedgerStore(config.paths.ledger_db),
            generator=generator,
            rules=rules,
            export_dir=config.paths.export_dir,
        )

    # --- Snapshots ---

    @property
    def profile(self) -> Profile:
        return self._state.profile

    @property
    def history(self) -> list[UsageRecord]:
        return list(self._state.history)

    @property
    def templates(self) -> list[CustomTemplate]:
        return list(self._state.templates)

    def summary(self) -> LedgerSummary:
        state = self._state
        return summarize(state.profile, state.history, self.rules)

    # --- Generation ---

    def _require_generator(self) -> ExcuseGenerator:
        if self.generator is None:
            raise RuntimeError("Session has no excuse generator configured")
        return self.generator

    def generate(
        self,
        context: str,
        audience: str,
        tone: Tone = Tone.CASUAL,
        risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM,
    ) -> GeneratedExcuse:
        """Ask the provider for an excuse. Bankrupt profiles are forced to low risk.

        Raises GenerationError; no state changes either way.
        """
        state = self._state
        request = GenerationRequest.for_profile(
            state.profile, context, audience, tone, risk_tolerance, self.rules
        )
        if request.risk_tolerance != risk_tolerance:
            logger.info("risk_tolerance_locked", requested=str(risk_tolerance))
        return self._require_generator().generate(
            request, state.profile, state.history, state.templates
        )

    def insight(self, record_id: str) -> str:
        """Ethical insight on a reflected record."""
        record = next((r for r in self._state.history if r.id == record_id), None)
        if record is None:
            raise RecordNotFound(record_id)
        return self._require_generator().analyze_reflection(record)

    # --- Scoring events ---

    def log_usage(self, excuse: GeneratedExcuse, was_true: bool) -> UsageRecord:
        """Score and persist one used excuse. Returns the new record."""
        with self._lock:
            state = self._state
            profile, record = engine.apply_usage(
                state.profile, state.history, excuse, was_true, self.rules
            )
            self.store.save_event(record, profile)
            self._state = LedgerSnapshot(
                profile=profile,
                history=[*state.history, record],
                templates=state.templates,
            )
        logger.info(
            "usage_logged",
            record_id=record.id,
            category=str(record.category),
            was_true=was_true,
            credibility=profile.overall_credibility,
            debt=profile.honesty_debt,
            risk=profile.risk_score,
        )
        return record

    def reflect(self, record_id: str, outcome: Outcome, rating: float, notes: str = "") -> Profile:
        """Record how a logged excuse landed. Returns the (possibly penalized) profile.

        Raises RecordNotFound or RecordAlreadyResolved.
        """
        with self._lock:
            state = self._state
            profile, history = engine.apply_reflection(
                state.profile, state.history, record_id, outcome, rating, notes, self.rules
            )
            resolved = next(r for r in history if r.id == record_id)
            changed = profile if profile is not state.profile else None
            self.store.save_event(resolved, changed)
            self._state = LedgerSnapshot(profile=profile, history=history, templates=state.templates)
        logger.info(
            "reflection_logged",
            record_id=record_id,
            outcome=str(outcome),
            credibility=profile.overall_credibility,
        )
        return profile

    # --- Templates ---

    def add_template(self, category: Category, text: str) -> CustomTemplate:
        text = text.strip()
        if not text:
            raise ValueError("Template text must not be empty")
        template = CustomTemplate(category=Category(category), text=text)
        with self._lock:
            self.store.save_template(template)
            self._state = LedgerSnapshot(
                profile=self._state.profile,
                history=self._state.history,
                templates=[*self._state.templates, template],
            )
        return template

    def delete_template(self, template_id: str) -> bool:
        with self._lock:
            deleted = self.store.delete_template(template_id)
            self._state = LedgerSnapshot(
                profile=self._state.profile,
                history=self._state.history,
                templates=[t for t in self._state.templates if t.id != template_id],
            )
        return deleted

    # --- Whole ledger ---

    def reset(self):
        """Purge history and templates; credibility returns to 100%."""
        with self._lock:
            self.store.clear_all()
            self._state = LedgerSnapshot(profile=Profile.initial())
        logger.warning("ledger_reset")

    def export_binary(self) -> bytes:
        with self._lock:
            return self.store.export_binary()

    def import_binary(self, data: bytes):
        with self._lock:
            self.store.import_binary(data)
            self._state = self.store.load()

    def export_json(self, output_path: Optional[Path] = None) -> int:
        """Write a JSON audit file; defaults to a dated name under export_dir."""
        if output_path is None:
            if self.export_dir is None:
                raise ValueError("No output path given and no export_dir configured")
            output_path = self.export_dir / default_export_name()
        with self._lock:
            return export_json(self.store, output_path)

    def import_json(self, input_path: Path):
        with self._lock:
            import_json(self.store, input_path)
            self._state = self.store.load()
