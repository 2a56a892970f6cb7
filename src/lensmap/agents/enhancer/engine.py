"""BatchEnhancementEngine: resolves flagged fields with as few service calls as possible.

Flagged fields are grouped globally by semantic category, then each group is
dispatched in bounded chunks. Every call goes through ``_call``, which returns
a CallOutcome instead of raising, so a failing service only ever degrades
results. A separate size pass derives frame structure from dimension objects.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from lensmap.agents.base import BaseAgent
from lensmap.agents.enhancer.categories import categorize
from lensmap.agents.enhancer.prompts import (
    build_batch_prompt,
    build_individual_prompt,
    build_size_prompt,
)
from lensmap.agents.enhancer.reconcile import (
    FAILED_BATCH_CONFIDENCE,
    PAD_CONFIDENCE,
    build_result,
    fallback_results,
    infer_size_outcome,
    parse_size_results,
    reconcile,
    unwrap_response,
)
from lensmap.agents.enhancer.results import (
    CallOutcome,
    EnhancementItem,
    ItemResult,
    ServiceFailure,
    ServiceReply,
)
from lensmap.agents.enhancer.simulation import simulate
from lensmap.core.config import AppSettings
from lensmap.core.exceptions import EnhancementServiceError
from lensmap.core.protocols import ICacheBackend, IModelProvider
from lensmap.models.fields import (
    CleanedRow,
    EnhancedField,
    EnhancedRow,
    FieldCategory,
    FieldSource,
)
from lensmap.models.pipeline import EnhancementStats, UsageStats
from lensmap.registry.patterns import SIZE_FIELD_KEY

logger = logging.getLogger(__name__)

INDIVIDUAL_CONFIDENCE = 80
SIDE_FIELD_CONFIDENCE = 85
SIZE_FALLBACK_CONFIDENCE = 70

_DIMENSION_KEYS = ("lensWidth", "bridgeWidth", "templeLength", "lensHeight")

_SOURCE_COUNTERS: dict[FieldSource, str] = {
    FieldSource.CACHE: "cache_hits",
    FieldSource.BATCH_AI: "batch_resolved",
    FieldSource.BATCH_AI_TRUNCATED: "batch_resolved",
    FieldSource.BATCH_AI_PARTIAL: "batch_resolved",
    FieldSource.INDIVIDUAL_AI: "individual_resolved",
    FieldSource.BATCH_AI_FALLBACK: "fallback_resolved",
    FieldSource.BATCH_FALLBACK: "fallback_resolved",
    FieldSource.INDIVIDUAL_FALLBACK: "fallback_resolved",
    FieldSource.SIMULATION: "simulated",
}

_CACHEABLE_SOURCES = {
    FieldSource.BATCH_AI,
    FieldSource.BATCH_AI_TRUNCATED,
    FieldSource.BATCH_AI_PARTIAL,
    FieldSource.INDIVIDUAL_AI,
}

# Outcome kinds whose side fields are written onto the row, and their provenance.
_SIDE_FIELD_SOURCES: dict[str, FieldSource] = {
    FieldCategory.DESCRIPTION.value: FieldSource.DESCRIPTION_ANALYSIS,
    FieldCategory.SIZE.value: FieldSource.SIZE_ANALYSIS_AI,
}


class BatchEnhancementEngine(BaseAgent):
    """Owns the result cache and usage counters for one run."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        model: IModelProvider,
        cache: ICacheBackend,
    ) -> None:
        super().__init__(settings=settings, model=model, cache=cache)
        self._llm = settings.llm
        self._cfg = settings.enhancer
        self._total_calls = 0
        self._total_tokens = 0
        self._simulation = not model.is_configured
        if self._simulation:
            logger.warning("No enhancement service credential, running in simulation mode")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enhance_batch(
        self, cleaned_rows: Sequence[CleanedRow]
    ) -> tuple[list[EnhancedRow], EnhancementStats]:
        """Resolve every flagged field. Never raises on service misbehaviour."""
        stats = EnhancementStats()
        rows: list[EnhancedRow] = [
            {key: EnhancedField.from_cleaned(field) for key, field in row.items()}
            for row in cleaned_rows
        ]

        groups: dict[FieldCategory, list[EnhancementItem]] = {c: [] for c in FieldCategory}
        for row_index, row in enumerate(rows):
            for field_key, field in list(row.items()):
                stats.total_fields += 1
                if not field.needs_ai:
                    stats.rule_resolved += 1
                    continue
                item = EnhancementItem(
                    row_index=row_index,
                    field_key=field_key,
                    category=categorize(field_key),
                    value=field.value,
                )
                cached = self._cache_lookup(item)
                if cached is not None:
                    self._apply(rows, item, cached, stats)
                    continue
                groups[item.category].append(item)

        logger.info(
            "Field groups: %s",
            ", ".join(f"{c}({len(items)})" for c, items in groups.items() if items) or "none",
        )
        for category, items in groups.items():
            if items:
                await self._process_group(category, items, rows, stats)

        await self._process_size_analysis(rows, stats)

        logger.info(
            "Enhanced %d fields: %d by rule, %d cached, %d batched, %d individual, "
            "%d fallback, %d simulated; %d calls, %d tokens, %d tokens saved by batching",
            stats.total_fields, stats.rule_resolved, stats.cache_hits, stats.batch_resolved,
            stats.individual_resolved, stats.fallback_resolved, stats.simulated,
            stats.calls, stats.tokens_used, stats.batch_savings,
        )
        return rows, stats

    def usage_stats(self) -> UsageStats:
        return UsageStats(
            total_calls=self._total_calls,
            total_tokens=self._total_tokens,
            estimated_cost=round(self._total_tokens * self._llm.cost_per_token, 4),
            cache_size=len(self._cache),
            has_api_key=self._model.is_configured,
        )

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Enhancement cache cleared")

    # ------------------------------------------------------------------
    # Category groups
    # ------------------------------------------------------------------

    async def _process_group(
        self,
        category: FieldCategory,
        items: list[EnhancementItem],
        rows: list[EnhancedRow],
        stats: EnhancementStats,
    ) -> None:
        if self._simulation:
            for item in items:
                self._apply(rows, item, simulate(item), stats)
            return

        # Items sharing a cache key are sent once; the rest are served from that result.
        duplicates: dict[str, list[EnhancementItem]] = {}
        for item in items:
            duplicates.setdefault(self._cache_key(item), []).append(item)
        unique = [group[0] for group in duplicates.values()]
        if len(unique) < len(items):
            logger.info("%d %s fields share %d distinct values", len(items), category, len(unique))

        if len(unique) < self._cfg.min_batch_size:
            for item in unique:
                group = duplicates[self._cache_key(item)]
                cached = self._cache_lookup(item)
                if cached is not None:
                    self._fan_out(rows, group, cached, stats)
                    continue
                result = await self._process_individual(item, stats)
                self._fan_out(rows, group, result, stats)
            return

        size = self._cfg.chunk_size
        chunks = [unique[i:i + size] for i in range(0, len(unique), size)]
        if len(chunks) > 1:
            logger.info("Splitting %d %s fields into %d chunks", len(unique), category, len(chunks))
        for chunk in chunks:
            pending: list[EnhancementItem] = []
            for item in chunk:
                cached = self._cache_lookup(item)
                if cached is not None:
                    self._fan_out(rows, duplicates[self._cache_key(item)], cached, stats)
                else:
                    pending.append(item)
            if not pending:
                continue
            results = await self._process_chunk(category, pending, stats)
            for item, result in zip(pending, results):
                self._fan_out(rows, duplicates[self._cache_key(item)], result, stats)

    def _fan_out(
        self,
        rows: list[EnhancedRow],
        group: list[EnhancementItem],
        result: ItemResult,
        stats: EnhancementStats,
    ) -> None:
        """Apply ``result`` to the first item, then serve its duplicates.

        Duplicates read the cache entry the first item left behind; results too
        weak to cache are copied over without their token charge.
        """
        first, rest = group[0], group[1:]
        self._apply(rows, first, result, stats)
        for item in rest:
            cached = self._cache_lookup(item)
            self._apply(rows, item, cached or result.model_copy(update={"tokens_used": 0}), stats)

    async def _process_chunk(
        self,
        category: FieldCategory,
        chunk: list[EnhancementItem],
        stats: EnhancementStats,
    ) -> list[ItemResult]:
        prompt = build_batch_prompt(category, [item.value for item in chunk])
        outcome = await self._call(
            prompt,
            max_tokens=self._llm.batch_max_tokens,
            token_estimate=self._cfg.batch_token_estimate,
            stats=stats,
        )
        if isinstance(outcome, ServiceFailure):
            logger.warning("Batch of %d %s fields failed: %s", len(chunk), category, outcome.reason)
            return fallback_results(
                chunk,
                source=FieldSource.BATCH_FALLBACK,
                confidence=FAILED_BATCH_CONFIDENCE,
                limit=self._cfg.fallback_truncate,
            )

        tokens = outcome.total_tokens or self._cfg.batch_token_estimate
        stats.batch_savings += len(chunk) * self._cfg.individual_cost_equivalent - tokens
        return reconcile(
            chunk,
            unwrap_response(outcome.content),
            tokens,
            fallback_limit=self._cfg.fallback_truncate,
        )

    async def _process_individual(
        self, item: EnhancementItem, stats: EnhancementStats
    ) -> ItemResult:
        outcome = await self._call(
            build_individual_prompt(item.category, item.value),
            max_tokens=self._llm.individual_max_tokens,
            token_estimate=self._cfg.individual_token_estimate,
            stats=stats,
        )
        parsed: Any = None
        if isinstance(outcome, ServiceReply):
            parsed = unwrap_response(outcome.content)
            if isinstance(parsed, list) and len(parsed) == 1:
                parsed = parsed[0]
            elif parsed is None:
                parsed = outcome.content.strip() or None

        if parsed is None or isinstance(parsed, list):
            logger.warning("Individual enhancement of %s fell back", item.field_key)
            return fallback_results(
                [item],
                source=FieldSource.INDIVIDUAL_FALLBACK,
                confidence=PAD_CONFIDENCE,
                limit=self._cfg.fallback_truncate,
            )[0]

        return build_result(
            item,
            parsed,
            confidence=INDIVIDUAL_CONFIDENCE,
            source=FieldSource.INDIVIDUAL_AI,
            tokens_used=outcome.total_tokens or self._cfg.individual_token_estimate,
            fallback_source=FieldSource.INDIVIDUAL_FALLBACK,
            fallback_limit=self._cfg.fallback_truncate,
        )

    # ------------------------------------------------------------------
    # Size pass
    # ------------------------------------------------------------------

    async def _process_size_analysis(
        self, rows: list[EnhancedRow], stats: EnhancementStats
    ) -> None:
        collected: list[tuple[int, Mapping[str, Any]]] = []
        for row_index, row in enumerate(rows):
            field = row.get(SIZE_FIELD_KEY)
            if field is None or not isinstance(field.value, Mapping):
                continue
            if any(field.value.get(k) for k in _DIMENSION_KEYS):
                collected.append((row_index, field.value))

        if not collected:
            logger.debug("No dimension data for size analysis")
            return

        size = self._cfg.chunk_size
        for start in range(0, len(collected), size):
            chunk = collected[start:start + size]
            dims = [d for _, d in chunk]
            outcomes = None
            if not self._simulation:
                call = await self._call(
                    build_size_prompt(dims),
                    max_tokens=self._llm.batch_max_tokens,
                    token_estimate=self._cfg.size_token_estimate,
                    stats=stats,
                )
                if isinstance(call, ServiceReply):
                    outcomes = parse_size_results(unwrap_response(call.content), len(chunk))
                if outcomes is None:
                    logger.warning("Size analysis fell back to heuristics for %d rows", len(chunk))

            if outcomes is None:
                outcomes = [infer_size_outcome(d) for d in dims]
                source, confidence = FieldSource.SIZE_ANALYSIS_FALLBACK, SIZE_FALLBACK_CONFIDENCE
            else:
                source, confidence = FieldSource.SIZE_ANALYSIS_AI, SIDE_FIELD_CONFIDENCE

            for (row_index, _), outcome in zip(chunk, outcomes):
                stats.side_fields_added += _merge_side_fields(
                    rows[row_index], outcome.side_fields(), source=source, confidence=confidence
                )
            stats.size_rows_analyzed += len(chunk)

        logger.info("Size analysis completed for %d rows", stats.size_rows_analyzed)

    # ------------------------------------------------------------------
    # Service calls, cache, merge-back
    # ------------------------------------------------------------------

    async def _call(
        self,
        prompt: str,
        *,
        max_tokens: int,
        token_estimate: int,
        stats: EnhancementStats,
    ) -> CallOutcome:
        messages = [
            {"role": "system", "content": self._llm.system_prompt},
            {"role": "user", "content": prompt},
        ]
        self._total_calls += 1
        stats.calls += 1
        try:
            reply = await self._model.chat(
                messages,
                max_tokens=max_tokens,
                temperature=self._llm.temperature,
                json_mode=True,
            )
        except EnhancementServiceError as exc:
            return ServiceFailure(reason=str(exc), status_code=exc.status_code)
        except Exception as exc:  # noqa: BLE001 - provider failures must not escape the engine
            logger.exception("Unexpected error from enhancement service")
            return ServiceFailure(reason=repr(exc))

        tokens = reply.total_tokens if reply.total_tokens is not None else token_estimate
        self._total_tokens += tokens
        stats.tokens_used += tokens
        return ServiceReply(content=reply.content, total_tokens=reply.total_tokens)

    def _cache_key(self, item: EnhancementItem) -> str:
        prefix = str(item.value).strip().lower()[: self._cfg.cache_prefix_length]
        return f"enhance:{item.category}:{prefix}"

    def _cache_lookup(self, item: EnhancementItem) -> ItemResult | None:
        raw = self._cache.get(self._cache_key(item))
        if raw is None:
            return None
        cached = ItemResult.model_validate_json(raw)
        logger.debug("Cache hit for %s", item.field_key)
        return cached.model_copy(update={"source": FieldSource.CACHE, "tokens_used": 0})

    def _apply(
        self,
        rows: list[EnhancedRow],
        item: EnhancementItem,
        result: ItemResult,
        stats: EnhancementStats,
    ) -> None:
        row = rows[item.row_index]
        current = row[item.field_key]
        row[item.field_key] = current.model_copy(
            update={
                "value": result.value,
                "confidence": result.confidence,
                "source": result.source,
                "outcome": result.outcome or current.outcome,
                "needs_ai": False,
                "enhanced": True,
                "tokens_used": result.tokens_used,
            }
        )

        counter = _SOURCE_COUNTERS.get(result.source)
        if counter:
            setattr(stats, counter, getattr(stats, counter) + 1)

        if result.outcome is not None and result.outcome.kind in _SIDE_FIELD_SOURCES:
            stats.side_fields_added += _merge_side_fields(
                row,
                result.outcome.side_fields(),
                source=_SIDE_FIELD_SOURCES[result.outcome.kind],
                confidence=SIDE_FIELD_CONFIDENCE,
            )

        if (
            result.source in _CACHEABLE_SOURCES
            and result.confidence >= self._cfg.cache_min_confidence
        ):
            self._cache.setex(
                self._cache_key(item), self._cfg.cache_ttl_seconds, result.model_dump_json()
            )


def _merge_side_fields(
    row: EnhancedRow,
    side_fields: Mapping[str, Any],
    *,
    source: FieldSource,
    confidence: int,
) -> int:
    """Write sibling fields the row does not already populate. Returns how many were added."""
    added = 0
    for key, value in side_fields.items():
        if not value:
            continue
        existing = row.get(key)
        if existing is not None and existing.value not in (None, ""):
            continue
        row[key] = EnhancedField(
            value=value,
            confidence=confidence,
            needs_ai=False,
            source=source,
            enhanced=True,
        )
        added += 1
    return added
