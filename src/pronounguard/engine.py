"""Correction engine: scan, resolve, rewrite and throttle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import CorrectionMode, EngineConfig
from .directory import PronounCache, PronounDirectory, build_sources
from .pronouns import accepted_forms, expand_label, is_sentinel
from .reminders import format_reminder
from .resolver import CorrectionOutcome, Corrections, MismatchDecision, MismatchResolver
from .rewriter import AppliedEdit, RewriteResult, apply_corrections
from .scanner import ScanOptions, ScanResult, extract_mentions, scan, strip_ignorable, window_from_name
from .tracking import ContextStats, DuplicateSettings, PersonStats, WindowedDuplicateTracker

if TYPE_CHECKING:
    import httpx

    from .logging import JSONLLogger

logger = logging.getLogger(__name__)

CLEAR_TARGETS = ("all", "person", "context", "cache")


@dataclass
class Analysis:
    """Everything the engine learned about a message, without side effects."""

    text: str
    scan: ScanResult
    labels: dict[str, str]
    outcomes: dict[str, CorrectionOutcome]
    decisions: list[MismatchDecision]
    preview: RewriteResult


@dataclass
class EngineResult:
    """What the host gets back for a message.

    Attributes:
        text: Text to send. Rewritten in AUTO_CORRECT mode, the original
            text otherwise.
        proceed: False when the host should hold the message.
        mode: The mode that produced this result.
        edits: Applied edits (AUTO_CORRECT) or suggested edits (other modes).
        outcomes: Per-person outcome.
        suppressed: People whose correction was throttled.
        summary: Human-readable explanation.
        reminders: Reminder messages for people whose correction fired.
    """

    text: str
    proceed: bool
    mode: CorrectionMode
    edits: list[AppliedEdit] = field(default_factory=list)
    outcomes: dict[str, CorrectionOutcome] = field(default_factory=dict)
    suppressed: list[str] = field(default_factory=list)
    summary: str = ""
    reminders: list[str] = field(default_factory=list)


@dataclass
class EngineStats:
    """Global statistics over the tracker and the label cache."""

    tracked_corrections: int
    cached_labels: int
    window_minutes: float
    max_per_window: int


class PronounCorrectionEngine:
    """Detects pronoun mismatches for mentioned people and corrects them.

    The directory and tracker are owned state passed in by the caller, so a
    host can share them between engines or give each test a fresh pair.
    """

    def __init__(
        self,
        directory: PronounDirectory | None = None,
        tracker: WindowedDuplicateTracker | None = None,
        config: EngineConfig | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.directory = directory or PronounDirectory(
            cache=PronounCache(ttl_seconds=self.config.cache_ttl_seconds),
            timeout=self.config.timeout_seconds,
            event_logger=event_logger,
        )
        self.tracker = tracker or WindowedDuplicateTracker(
            DuplicateSettings(
                window_minutes=self.config.window_minutes,
                max_per_window=self.config.max_per_window,
                sweep_interval_minutes=self.config.sweep_interval_minutes,
            )
        )
        self.resolver = MismatchResolver(
            confidence_floor=self.config.confidence_floor,
            aggregation=self.config.aggregation,
            context_aware=self.config.context_aware,
        )
        self.scan_options = ScanOptions(
            strip_ignorable=self.config.strip_ignorable,
            context_aware=self.config.context_aware,
            window=window_from_name(self.config.window),
        )
        self.event_logger = event_logger

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        client: httpx.AsyncClient | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> PronounCorrectionEngine:
        """Build an engine whose directory uses the sources named in config."""
        directory = PronounDirectory(
            sources=build_sources(config, client),
            cache=PronounCache(ttl_seconds=config.cache_ttl_seconds),
            timeout=config.timeout_seconds,
            event_logger=event_logger,
        )
        return cls(directory=directory, config=config, event_logger=event_logger)

    def mentioned(self, text: str) -> list[str]:
        """People mentioned outside ignorable regions."""
        working = strip_ignorable(text) if self.scan_options.strip_ignorable else text
        return extract_mentions(working)

    async def _label_for(self, person_id: str, labels: dict[str, str] | None) -> str:
        if labels and person_id in labels:
            return labels[person_id]
        return await self.directory.resolve(person_id)

    def _merge_decisions(
        self,
        scan_result: ScanResult,
        outcomes: dict[str, CorrectionOutcome],
        labels: dict[str, str],
    ) -> list[MismatchDecision]:
        """Collect decisions from every person, dropping contested positions.

        A position is left alone when its token is acceptable for another
        referenced person whose window also covers it.
        """
        accepted: dict[str, set[str] | None] = {}
        for person_id, label in labels.items():
            if is_sentinel(label):
                # "any" accepts every token; "unspecified" tells us nothing.
                accepted[person_id] = None if label.strip().lower() == "unspecified" else {"*"}
                continue
            table = expand_label(label)
            accepted[person_id] = accepted_forms(table) if table else None

        chosen: dict[int, MismatchDecision] = {}
        for outcome in outcomes.values():
            if not isinstance(outcome, Corrections):
                continue
            for decision in outcome.decisions:
                contested = False
                for other_id, forms in accepted.items():
                    if other_id == decision.person_id or forms is None:
                        continue
                    covers = any(
                        o.position == decision.position
                        for o in scan_result.context_for(other_id).occurrences
                    )
                    if covers and ("*" in forms or decision.wrong_token in forms):
                        contested = True
                        break
                if contested:
                    logger.debug(
                        "Skipping contested pronoun at %d for %s",
                        decision.position,
                        decision.person_id,
                    )
                    continue

                current = chosen.get(decision.position)
                if current is None or decision.confidence > current.confidence:
                    chosen[decision.position] = decision

        return [chosen[position] for position in sorted(chosen)]

    async def _evaluate(
        self,
        text: str,
        person_ids: list[str] | None,
        labels: dict[str, str] | None,
        skip: list[str] | None = None,
    ) -> Analysis:
        scan_result = scan(text, person_ids, self.scan_options)
        skipped = set(skip or [])

        resolved: dict[str, str] = {}
        for person_id in scan_result.nearby:
            if person_id in skipped:
                continue
            resolved[person_id] = await self._label_for(person_id, labels)

        outcomes: dict[str, CorrectionOutcome] = {
            person_id: self.resolver.resolve(scan_result.context_for(person_id), label, person_id)
            for person_id, label in resolved.items()
        }
        decisions = self._merge_decisions(scan_result, outcomes, resolved)

        return Analysis(
            text=text,
            scan=scan_result,
            labels=resolved,
            outcomes=outcomes,
            decisions=decisions,
            preview=apply_corrections(text, decisions),
        )

    async def analyze(
        self,
        text: str,
        person_ids: list[str] | None = None,
        labels: dict[str, str] | None = None,
    ) -> Analysis:
        """Analyze a message without touching the duplicate tracker.

        Args:
            text: Message text.
            person_ids: Referenced people. Defaults to mentions in the text.
            labels: Known labels that override directory lookups.

        Returns:
            Analysis with outcomes and a rewrite preview.
        """
        return await self._evaluate(text, person_ids, labels)

    async def process(
        self,
        text: str,
        context_id: str,
        person_ids: list[str] | None = None,
        mode: CorrectionMode | None = None,
        labels: dict[str, str] | None = None,
    ) -> EngineResult:
        """Run the full pipeline for a message in a context.

        BLOCK_AND_WARN consults the tracker before resolving labels;
        AUTO_CORRECT consults it after resolution, only for people with
        corrections. PREVIEW never records.
        """
        mode = mode or self.config.mode

        if mode is CorrectionMode.BLOCK_AND_WARN:
            return await self._block_and_warn(text, context_id, person_ids, labels)

        analysis = await self._evaluate(text, person_ids, labels)

        if mode is CorrectionMode.PREVIEW:
            return EngineResult(
                text=text,
                proceed=True,
                mode=mode,
                edits=analysis.preview.edits,
                outcomes=analysis.outcomes,
                summary=self.summarize(analysis.outcomes),
            )

        allowed: list[str] = []
        suppressed: list[str] = []
        for person_id, outcome in analysis.outcomes.items():
            if not isinstance(outcome, Corrections):
                continue
            if self.tracker.is_duplicate(context_id, person_id, content=text):
                suppressed.append(person_id)
                self._log_suppressed(person_id, context_id)
            else:
                allowed.append(person_id)

        decisions = [d for d in analysis.decisions if d.person_id in allowed]
        rewrite = apply_corrections(text, decisions)

        applied = {edit.position for edit in rewrite.edits}
        fired: list[str] = []
        for person_id in allowed:
            count = sum(1 for d in decisions if d.person_id == person_id and d.position in applied)
            if not count:
                continue
            fired.append(person_id)
            self._record(context_id, person_id, analysis.outcomes[person_id], count, mode, text)

        return EngineResult(
            text=rewrite.text,
            proceed=True,
            mode=mode,
            edits=rewrite.edits,
            outcomes=analysis.outcomes,
            suppressed=suppressed,
            summary=self.summarize(analysis.outcomes, suppressed),
            reminders=[self.reminder(p, analysis.labels[p]) for p in fired],
        )

    async def _block_and_warn(
        self,
        text: str,
        context_id: str,
        person_ids: list[str] | None,
        labels: dict[str, str] | None,
    ) -> EngineResult:
        candidates = person_ids if person_ids is not None else self.mentioned(text)
        suppressed = [p for p in candidates if self.tracker.is_duplicate(context_id, p, content=text)]
        for person_id in suppressed:
            self._log_suppressed(person_id, context_id)

        analysis = await self._evaluate(text, candidates, labels, skip=suppressed)

        # Only people with a decision that survived the contested-position filter.
        firing = [
            person_id
            for person_id, outcome in analysis.outcomes.items()
            if isinstance(outcome, Corrections)
            and any(d.person_id == person_id for d in analysis.decisions)
        ]
        for person_id in firing:
            count = sum(1 for d in analysis.decisions if d.person_id == person_id)
            self._record(
                context_id,
                person_id,
                analysis.outcomes[person_id],
                count,
                CorrectionMode.BLOCK_AND_WARN,
                text,
            )

        return EngineResult(
            text=text,
            proceed=not firing,
            mode=CorrectionMode.BLOCK_AND_WARN,
            edits=analysis.preview.edits,
            outcomes=analysis.outcomes,
            suppressed=suppressed,
            summary=self.summarize(analysis.outcomes, suppressed),
            reminders=[self.reminder(p, analysis.labels[p]) for p in firing],
        )

    def _record(
        self,
        context_id: str,
        person_id: str,
        outcome: CorrectionOutcome,
        edits: int,
        mode: CorrectionMode,
        text: str,
    ) -> None:
        self.tracker.record(context_id, person_id, content=text)
        logger.info("Correction for %s in %s (%s)", person_id, context_id, mode.value)
        if self.event_logger:
            self.event_logger.log_correction(
                person_id,
                context_id,
                label=outcome.expected_label,
                confidence=outcome.confidence,
                edits=edits,
                mode=mode.value,
            )

    def _log_suppressed(self, person_id: str, context_id: str) -> None:
        logger.info("Correction for %s in %s suppressed as duplicate", person_id, context_id)
        if self.event_logger:
            self.event_logger.log_suppressed(person_id, context_id, reason="duplicate")

    def summarize(
        self,
        outcomes: dict[str, CorrectionOutcome],
        suppressed: list[str] | None = None,
    ) -> str:
        """Human-readable summary, one line per person."""
        lines = [f"{person_id}: {outcome.reason}" for person_id, outcome in outcomes.items()]
        for person_id in suppressed or []:
            lines.append(f"{person_id}: correction suppressed (recently corrected)")
        return "\n".join(lines) if lines else "no referenced people"

    def reminder(self, person_id: str, label: str) -> str:
        """Reminder message in the configured tone."""
        return format_reminder(person_id, label, self.config.tone, self.config.custom_message)

    def stats(self) -> EngineStats:
        """Global statistics."""
        return EngineStats(
            tracked_corrections=self.tracker.size(),
            cached_labels=len(self.directory.cache),
            window_minutes=self.tracker.settings.window_minutes,
            max_per_window=self.tracker.settings.max_per_window,
        )

    def person_stats(self, person_id: str) -> PersonStats:
        return self.tracker.person_stats(person_id)

    def context_stats(self, context_id: str) -> ContextStats:
        return self.tracker.context_stats(context_id)

    def clear(self, target: str, target_id: str | None = None) -> int:
        """Clear tracker records and/or the label cache.

        Args:
            target: One of 'all', 'person', 'context', 'cache'.
            target_id: Person or context id for the scoped targets.

        Returns:
            Number of records or cache entries removed.
        """
        if target not in CLEAR_TARGETS:
            raise ValueError(f"Invalid target '{target}'. Use one of: {', '.join(CLEAR_TARGETS)}")

        if target == "all":
            return self.tracker.clear() + self.directory.clear_cache()
        if target == "cache":
            return self.directory.clear_cache()
        if not target_id:
            raise ValueError(f"An id is required to clear {target} records")
        if target == "person":
            return self.tracker.clear_person(target_id)
        return self.tracker.clear_context(target_id)
