"""PipelineExecutor: runs one file through every stage in order.

read → classify → map → clean → enhance → assemble → write. Quality gates
only warn; a LensMapError from any stage ends the run with success=False.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from lensmap.agents.cleaner.field_cleaner import FieldCleanerService
from lensmap.agents.enhancer.engine import BatchEnhancementEngine
from lensmap.agents.idp.column_mapper import ColumnMapperService
from lensmap.agents.idp.file_reader import detect_brand, read_file, sample_rows
from lensmap.agents.idp.type_classifier import TypeClassifierService
from lensmap.agents.transform.csv_writer import CsvOutputSink
from lensmap.agents.transform.record_assembler import RecordAssembler
from lensmap.core.config import AppSettings
from lensmap.core.exceptions import LensMapError
from lensmap.core.protocols import ICacheBackend, IModelProvider, IOutputSink
from lensmap.model_providers.factory import create_model_provider
from lensmap.models.pipeline import PipelineResult, StepState, StepStatus
from lensmap.models.record import IngestedTable
from lensmap.persistence import create_cache

logger = logging.getLogger(__name__)


@contextmanager
def _stage(result: PipelineResult, name: str) -> Iterator[StepState]:
    step = StepState(name=name)
    result.steps.append(step)
    started = time.perf_counter()
    try:
        yield step
    except LensMapError:
        step.status = StepStatus.FAILED
        raise
    finally:
        step.duration_ms = int((time.perf_counter() - started) * 1000)
    if step.status == StepStatus.PENDING:
        step.status = StepStatus.COMPLETED


class PipelineExecutor:
    """Wires the stage services together for one settings profile."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        model: IModelProvider | None = None,
        cache: ICacheBackend | None = None,
        sink: IOutputSink | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._classifier = TypeClassifierService()
        self._mapper = ColumnMapperService()
        self._cleaner = FieldCleanerService()
        self._engine = BatchEnhancementEngine(
            settings=self._settings,
            model=model or create_model_provider(self._settings),
            cache=cache or create_cache(),
        )
        self._assembler = RecordAssembler()
        self._sink = sink or CsvOutputSink(self._settings.output.output_dir)

    @property
    def engine(self) -> BatchEnhancementEngine:
        return self._engine

    async def aclose(self) -> None:
        await self._engine.aclose()

    async def process_file(self, path: str | Path) -> PipelineResult:
        result = PipelineResult(file_name=Path(path).name)
        try:
            with _stage(result, "read") as step:
                table = read_file(path)
                step.details = table.cleaning_stats.model_dump()
        except LensMapError as exc:
            logger.error("Could not read %s: %s", path, exc)
            result.errors.append(str(exc))
            return result

        output = self._settings.output
        brand = detect_brand(table.file_name, output.known_brands, output.default_brand)
        return await self.process_table(table, brand=brand, result=result)

    async def process_table(
        self,
        table: IngestedTable,
        *,
        brand: str | None = None,
        write_output: bool = True,
        result: PipelineResult | None = None,
    ) -> PipelineResult:
        result = result or PipelineResult(file_name=table.file_name)
        result.brand = brand or self._settings.output.default_brand
        thresholds = self._settings.thresholds

        try:
            with _stage(result, "classify") as step:
                classification = self._classifier.classify(table.headers, sample_rows(table))
                result.record_type = str(classification.record_type)
                step.details = classification.model_dump(mode="json")
                if not classification.is_acceptable(thresholds.min_detection_confidence):
                    logger.warning(
                        "Low detection confidence (%d%%) for %s",
                        classification.confidence, classification.record_type,
                    )
                    step.status = StepStatus.WARNING

            with _stage(result, "map") as step:
                mapping = self._mapper.map_columns(table.headers, classification.record_type)
                step.details = {
                    **mapping.model_dump(mode="json"),
                    "mapped_percentage": round(mapping.mapped_percentage),
                    "average_confidence": mapping.average_confidence,
                }
                if not mapping.is_acceptable(
                    thresholds.min_mapped_percentage, thresholds.min_average_confidence
                ):
                    logger.warning(
                        "Low mapping coverage: %d/%d fields, avg confidence %d%%",
                        mapping.mapped_count, mapping.total_targets, mapping.average_confidence,
                    )
                    step.status = StepStatus.WARNING

            with _stage(result, "clean") as step:
                cleaned_rows, cleaning = self._cleaner.clean_batch(table.rows, mapping)
                step.details = cleaning.model_dump()

            with _stage(result, "enhance") as step:
                enhanced_rows, enhancement = await self._engine.enhance_batch(cleaned_rows)
                step.details = enhancement.model_dump()

            with _stage(result, "assemble") as step:
                assembly = self._assembler.assemble(
                    enhanced_rows, classification.record_type, result.brand
                )
                step.details = assembly.stats.model_dump()
                if assembly.stats.failed:
                    step.status = StepStatus.WARNING

            result.rows = assembly.rows
            result.stats = {
                "ingestion": table.cleaning_stats.model_dump(),
                "cleaning": cleaning.model_dump(),
                "enhancement": enhancement.model_dump(),
                "assembly": assembly.stats.model_dump(),
                "coverage": assembly.coverage.model_dump(),
                "usage": self._engine.usage_stats().model_dump(),
            }

            if write_output:
                with _stage(result, "write") as step:
                    export = self._sink.write(
                        assembly.rows,
                        assembly.columns,
                        brand=result.brand,
                        record_type=result.record_type,
                    )
                    step.details = export.model_dump()
                    result.stats["output"] = step.details

        except LensMapError as exc:
            logger.error("Pipeline failed for %s: %s", result.file_name, exc)
            result.errors.append(str(exc))
            return result

        result.success = True
        logger.info(
            "Processed %s as %s for %s: %d rows",
            result.file_name, result.record_type, result.brand, len(result.rows),
        )
        return result
