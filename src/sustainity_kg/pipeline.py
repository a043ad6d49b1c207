"""Sustainity Knowledge Base Pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
import hashlib
import logging
import os
from pathlib import Path
import queue
import threading
import time
from typing import Any, NamedTuple, TypedDict
import uuid

from dotenv import load_dotenv

from .condenser import Condenser
from .config import (
    ClassifierConfig,
    PipelineConfig,
    ProcessingConfig,
    ProviderConfig,
    SourceConfig,
    StoreConfig,
    validate_config,
)
from .config.models import (
    CacheEntry,
    Category,
    CondensedDataset,
    DatasetVersion,
    DomainRecord,
)
from .dump import DumpLine, DumpReader, parse_line
from .errors import (
    ClassificationAmbiguous,
    ConfigError,
    DumpIoError,
    ParseError,
    StoreError,
    WorkerError,
)
from .processors import (
    CertificationAdvisor,
    Classifier,
    ClassifierTable,
    RecordBuilder,
    builder_fingerprint,
    load_advisors,
)
from .providers import create_provider
from .store import LmdbStore, StoreInterface
from .store.codec import dumps_canonical
from .utils.logging import ProgressLogger, issue_levels, setup_logging
from .utils.stats import RunStats

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "wikidata"


class UnresolvedRelationInfo(TypedDict):
    source: str
    kind: str
    target: str


class PipelineResults(TypedDict):
    start_time: float
    end_time: float | None
    duration: float | None
    processed: int
    skipped: int
    parse_errors: int
    irrelevant: int
    ambiguous: int
    incomplete: int
    unresolved: int
    merge_conflicts: int
    worker_errors: int
    records: int
    unresolved_relations: list[UnresolvedRelationInfo]
    dataset_version: int | None
    interrupted: bool
    success: bool
    error: str | None


class WorkItem(NamedTuple):
    source: str
    line: DumpLine


class WorkResult(NamedTuple):
    source: str
    line_number: int
    offset: int
    entry: CacheEntry | None = None
    reused: str | None = None
    records: tuple[DomainRecord, ...] = ()


@dataclass
class SourceState:
    """Everything a run needs to read one source."""

    config: SourceConfig
    path: Path
    fingerprint: dict[str, Any]
    builder: RecordBuilder
    build_fingerprint: str
    line_number: int = 0
    offset: int = 0
    _completed: dict[int, int] = field(
        default_factory=dict[int, int], init=False, repr=False
    )

    @property
    def name(self) -> str:
        return self.config.name

    def complete(self, line_number: int, offset: int) -> None:
        """Advance the committed position over the contiguous prefix of lines."""
        self._completed[line_number] = offset
        while self.line_number + 1 in self._completed:
            self.line_number += 1
            self.offset = self._completed.pop(self.line_number)

    def checkpoint(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "line_number": self.line_number,
            "offset": self.offset,
        }


# Marks the end of the work queue for one worker, and a finished worker
_STOP = None


class Pipeline:
    """Main pipeline orchestrator.

    One reader thread streams dump lines into a bounded queue, a pool of
    worker threads parses, classifies and builds them, and the calling
    thread condenses the results and writes them to the store.
    """

    def __init__(self, config: PipelineConfig):
        load_dotenv()

        validate_config(config)
        self.config = config

        setup_logging(config.logging)
        self.logger = logging.getLogger(__name__)

        self.workers = config.processing.workers or os.cpu_count() or 1
        self.classifier = Classifier(ClassifierTable.from_config(config.classifier))
        self.advisors: list[CertificationAdvisor] = []
        self.stats = RunStats(issue_levels=issue_levels(config.logging))
        self.progress = ProgressLogger(
            config.processing.log_every, self.stats.snapshot, self.logger
        )

        self._shutdown = threading.Event()
        self._abort = threading.Event()
        self._fatal_error: Exception | None = None
        self._fatal_lock = threading.Lock()

        self.run_id = ""
        self.sources: dict[str, SourceState] = {}
        self.condenser = Condenser(config.builder, config.scoring, stats=self.stats)
        self._batch: list[CacheEntry] = []
        self._touched: list[str] = []

    def request_shutdown(self) -> None:
        """Stop reading, flush the checkpoint and return without publishing."""
        if not self._shutdown.is_set():
            self.logger.warning("Shutdown requested, finishing in-flight work")
        self._shutdown.set()

    def run(self) -> PipelineResults:
        """Execute the complete pipeline.

        Returns:
            Pipeline execution results and statistics
        """
        start_time = time.time()
        self.logger.info("Starting Sustainity KB Pipeline")

        results: PipelineResults = {
            "start_time": start_time,
            "end_time": None,
            "duration": None,
            "processed": 0,
            "skipped": 0,
            "parse_errors": 0,
            "irrelevant": 0,
            "ambiguous": 0,
            "incomplete": 0,
            "unresolved": 0,
            "merge_conflicts": 0,
            "worker_errors": 0,
            "records": 0,
            "unresolved_relations": [],
            "dataset_version": None,
            "interrupted": False,
            "success": False,
            "error": None,
        }

        try:
            store_config = self.config.store
            with LmdbStore(
                store_config.path,
                map_size=store_config.map_size,
                keep_versions=store_config.keep_versions,
            ) as store:
                dataset = self._run_with_store(store)

                if dataset is None:
                    results["interrupted"] = True
                    self.logger.warning(
                        "Pipeline interrupted, checkpoint saved for resume"
                    )
                else:
                    results["dataset_version"] = dataset.version.number
                    results["records"] = len(dataset.records)
                    results["incomplete"] = len(dataset.incomplete)
                    results["unresolved"] = len(dataset.unresolved)
                    results["merge_conflicts"] = dataset.merge_conflicts
                    results["unresolved_relations"] = [
                        {
                            "source": relation.source,
                            "kind": relation.kind.value,
                            "target": relation.target,
                        }
                        for relation in dataset.unresolved
                    ]
                    results["success"] = True

        except (DumpIoError, StoreError, ConfigError) as e:
            self.logger.error(f"Pipeline failed: {e}")
            results["error"] = str(e)

        counts = self.stats.snapshot()
        results["processed"] = counts.get("processed", 0)
        results["skipped"] = counts.get("skipped", 0)
        results["parse_errors"] = counts.get("parse_error", 0)
        results["irrelevant"] = counts.get("irrelevant", 0)
        results["ambiguous"] = counts.get("ambiguous", 0)
        results["worker_errors"] = counts.get("worker_error", 0)

        end_time = time.time()
        results["end_time"] = end_time
        results["duration"] = end_time - start_time

        if results["success"]:
            self.logger.info(
                f"Pipeline completed successfully in {results['duration']:.2f} seconds"
            )
            self.logger.info(
                f"Processed {results['processed']} entities "
                f"({results['skipped']} unchanged), "
                f"published {results['records']} records "
                f"as version {results['dataset_version']}"
            )
        elif not results["interrupted"]:
            self.logger.error(
                f"Pipeline completed with errors in {results['duration']:.2f} seconds"
            )

        return results

    def _run_with_store(self, store: StoreInterface) -> CondensedDataset | None:
        self.advisors = load_advisors(self.config.advisors)
        self.sources = {source.name: source for source in self._prepare_sources()}
        revision = self._dataset_revision()

        self._restore_run(store, revision)

        for advisor in self.advisors:
            self.condenser.add(advisor.certification_record())

        self._process_sources(store, revision)

        if self._fatal_error is not None:
            raise self._fatal_error
        if self._shutdown.is_set():
            return None

        current = store.current_version()
        version = DatasetVersion(
            number=(current.number + 1) if current else 1,
            revision=revision,
            created_at=datetime.now(UTC).isoformat(),
        )
        dataset = self.condenser.condense(version)
        store.publish(dataset)
        store.prune_cache(self.run_id)
        store.clear_run_state()
        return dataset

    def _prepare_sources(self) -> list[SourceState]:
        states: list[SourceState] = []
        for source_config in self.config.sources:
            if not source_config.enabled:
                continue

            provider = create_provider(
                source_config.name, source_config.provider, self.config.cache_dir
            )
            path = provider.fetch(source_config.provider)
            build_fingerprint = builder_fingerprint(
                self.config.builder,
                self.config.classifier,
                source_config.priority,
                self.advisors,
            )
            states.append(
                SourceState(
                    config=source_config,
                    path=path,
                    fingerprint=provider.get_cache_key_fields(source_config.provider),
                    builder=RecordBuilder(
                        source_config.name,
                        source_config.priority,
                        self.config.builder,
                        advisors=self.advisors,
                    ),
                    build_fingerprint=build_fingerprint,
                )
            )

        if not states:
            raise ConfigError("No enabled sources configured")
        return states

    def _dataset_revision(self) -> str:
        payload = {
            state.name: {
                "fingerprint": state.fingerprint,
                "build": state.build_fingerprint,
            }
            for state in self.sources.values()
        }
        return hashlib.sha256(dumps_canonical(payload)).hexdigest()[:16]

    def _restore_run(self, store: StoreInterface, revision: str) -> None:
        """Resume an interrupted run over the same inputs or start a new one."""
        state = store.load_run_state()
        if state is None or state.get("revision") != revision:
            self.run_id = uuid.uuid4().hex
            if state is not None:
                self.logger.info(
                    f"Discarding checkpoint of run {state.get('run_id')}, "
                    "inputs changed"
                )
            store.save_run_state(self._checkpoint(revision))
            self.logger.info(f"Starting run {self.run_id}")
            return

        self.run_id = state["run_id"]
        saved_sources: dict[str, Any] = state.get("sources", {})
        restored = 0
        for source in self.sources.values():
            saved = saved_sources.get(source.name)
            if saved is None:
                continue
            source.line_number = saved["line_number"]
            source.offset = saved["offset"]
            for entry in store.iter_run_entries(self.run_id, source.name):
                self.condenser.add_all(entry.records)
                restored += 1

        self.logger.info(
            f"Resuming run {self.run_id} with {restored} restored cache entries"
        )

    def _checkpoint(self, revision: str) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "revision": revision,
            "sources": {
                name: source.checkpoint() for name, source in self.sources.items()
            },
        }

    def _process_sources(self, store: StoreInterface, revision: str) -> None:
        queue_size = self.config.processing.queue_size
        work_queue: queue.Queue[WorkItem | None] = queue.Queue(maxsize=queue_size)
        result_queue: queue.Queue[WorkResult | None] = queue.Queue(maxsize=queue_size)

        reader = threading.Thread(
            target=self._read_sources,
            args=(work_queue,),
            name="dump-reader",
            daemon=True,
        )
        workers = [
            threading.Thread(
                target=self._work,
                args=(store, work_queue, result_queue),
                name=f"builder-{i}",
                daemon=True,
            )
            for i in range(self.workers)
        ]

        self.logger.info(
            f"Processing {len(self.sources)} source(s) with {self.workers} workers"
        )
        reader.start()
        for worker in workers:
            worker.start()

        finished = 0
        while finished < len(workers):
            result = result_queue.get()
            if result is _STOP:
                finished += 1
                continue
            if self._abort.is_set():
                continue
            try:
                self._handle_result(result)
                pending = len(self._batch) + len(self._touched)
                if pending >= self.config.store.commit_every:
                    self._commit(store, revision)
            except Exception as e:
                self._fail(e)

        reader.join()
        for worker in workers:
            worker.join()

        if not self._abort.is_set():
            self._commit(store, revision)

    def _handle_result(self, result: WorkResult) -> None:
        """Feed one worker result to the condenser and the pending batch."""
        self.condenser.add_all(result.records)
        if result.entry is not None:
            self._batch.append(result.entry)
        if result.reused is not None:
            self._touched.append(result.reused)

        source = self.sources[result.source]
        source.complete(result.line_number, result.offset)

        self.progress.advance()

    def _commit(self, store: StoreInterface, revision: str) -> None:
        checkpoint = self._checkpoint(revision)
        if self._batch:
            store.put_cache_entries(
                self._batch, self.run_id, checkpoint=checkpoint, touched=self._touched
            )
        else:
            store.touch_cache_entries(self._touched, self.run_id, checkpoint=checkpoint)
        self.logger.debug(
            f"Committed {len(self._batch)} cache entries and "
            f"{len(self._touched)} reused entries"
        )
        self._batch = []
        self._touched = []

    def _read_sources(self, work_queue: queue.Queue[WorkItem | None]) -> None:
        try:
            for source in self.sources.values():
                reader = DumpReader(source.path, start_offset=source.offset)
                self.logger.info(f"Reading source {source.name} from {source.path}")
                for line in reader.iter_lines():
                    if self._stopping():
                        return
                    work_queue.put(WorkItem(source.name, line))
        except DumpIoError as e:
            self._fail(e)
        finally:
            for _ in range(self.workers):
                work_queue.put(_STOP)

    def _work(
        self,
        store: StoreInterface,
        work_queue: queue.Queue[WorkItem | None],
        result_queue: queue.Queue[WorkResult | None],
    ) -> None:
        try:
            while True:
                item = work_queue.get()
                if item is _STOP:
                    return
                if self._stopping():
                    continue
                source = self.sources[item.source]
                try:
                    result = self._build(store, source, item.line)
                except StoreError as e:
                    self._fail(e)
                    continue
                except Exception as e:
                    self.stats.record(
                        WorkerError(f"{source.name}:{item.line.line_number}", e)
                    )
                    result = WorkResult(
                        source.name, item.line.line_number, item.line.offset
                    )
                result_queue.put(result)
        finally:
            result_queue.put(_STOP)

    def _build(
        self, store: StoreInterface, source: SourceState, line: DumpLine
    ) -> WorkResult:
        """Parse, classify and build one dump line."""
        done = WorkResult(source.name, line.line_number, line.offset)

        try:
            entity = parse_line(line.data, line.line_number)
        except ParseError as e:
            self.stats.record(e)
            return done
        if entity is None:
            return done

        self.stats.increment("processed")

        try:
            cached = store.get_cache_entry(source.name, entity.id)
            if cached is not None and cached.matches(
                entity.revision, source.build_fingerprint
            ):
                self.stats.increment("skipped")
                return done._replace(reused=cached.key, records=cached.records)

            try:
                category = self.classifier.classify(entity)
            except ClassificationAmbiguous as e:
                self.stats.record(e)
                category = Category.IRRELEVANT

            records: tuple[DomainRecord, ...] = ()
            if category is Category.IRRELEVANT:
                self.stats.increment("irrelevant")
            else:
                records = (source.builder.build(entity, category),)
        except StoreError:
            raise
        except Exception as e:
            self.stats.record(WorkerError(entity.id, e))
            return done

        entry = CacheEntry(
            source=source.name,
            entity_id=entity.id,
            revision=entity.revision,
            fingerprint=source.build_fingerprint,
            category=None if category is Category.IRRELEVANT else category,
            records=records,
        )
        return done._replace(entry=entry, records=records)

    def _stopping(self) -> bool:
        return self._shutdown.is_set() or self._abort.is_set()

    def _fail(self, error: Exception) -> None:
        with self._fatal_lock:
            if self._fatal_error is None:
                self._fatal_error = error
        self._abort.set()


def build_config(
    dump_path: str | Path,
    store_path: str | Path,
    workers: int | None = None,
    classifier: ClassifierConfig | None = None,
    **overrides: Any,
) -> PipelineConfig:
    """
    Build a single-source configuration.

    Keyword overrides may name any top-level, store or processing setting.
    """
    config = PipelineConfig(
        sources=[
            SourceConfig(
                name=DEFAULT_SOURCE,
                provider=ProviderConfig(provider_type="file", file_path=dump_path),
            )
        ],
        store=StoreConfig(path=store_path),
        processing=ProcessingConfig(workers=workers),
    )
    if classifier is not None:
        config.classifier = classifier

    top_level = {f.name for f in fields(PipelineConfig)}
    store_fields = {f.name for f in fields(StoreConfig)}
    processing_fields = {f.name for f in fields(ProcessingConfig)}
    for key, value in overrides.items():
        if key in top_level:
            setattr(config, key, value)
        elif key in store_fields:
            config.store = replace(config.store, **{key: value})
        elif key in processing_fields:
            config.processing = replace(config.processing, **{key: value})
        else:
            raise ConfigError(f"Unknown pipeline setting: {key}")

    validate_config(config)
    return config


def run_pipeline(
    dump_path: str | Path,
    store_path: str | Path,
    workers: int | None = None,
    classifier: ClassifierConfig | None = None,
    **overrides: Any,
) -> PipelineResults:
    """Condense one dump into the store and publish a new dataset version."""
    config = build_config(dump_path, store_path, workers, classifier, **overrides)
    return Pipeline(config).run()
