import concurrent.futures
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from ccmp.config.models import AppConfig
from ccmp.domain.errors import InputNotFound, PipelineError
from ccmp.domain.events import (
    JobCompleted, JobFailed, JobStarted, RequestShutdown, RunFinished, RunStarted
)
from ccmp.domain.models import CompressionJob, InputFile, JobStatus, RunSummary
from ccmp.infrastructure.codecs import CODECS, CodecDescriptor, get_codec
from ccmp.infrastructure.event_bus import EventBus
from ccmp.pipeline.compression import CompressionPipeline

class Orchestrator:
    """Races every enabled codec against the same input file.

    One pipeline per codec, each on its own worker thread with its own read
    handle. Results are published in completion order.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        codecs: Optional[Tuple[CodecDescriptor, ...]] = None
    ):
        self.config = config
        self.event_bus = event_bus
        self.codecs = codecs if codecs is not None else CODECS
        self.logger = logging.getLogger(__name__)
        self._cancel_event = threading.Event()
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.event_bus.subscribe(RequestShutdown, self._on_shutdown_request)

    def _on_shutdown_request(self, event: RequestShutdown):
        self._cancel_event.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._cancel_event.is_set()

    def _enabled_codecs(self) -> List[CodecDescriptor]:
        enabled = {name.lower() for name in self.config.general.codecs}
        return [c for c in self.codecs if c.name.lower() in enabled]

    def _output_dir(self) -> Path:
        return self.config.general.output_dir or Path.cwd()

    def build_jobs(self, source: InputFile) -> List[CompressionJob]:
        """Creates one job per enabled codec; output paths must not collide."""
        output_dir = self._output_dir()
        jobs = []
        seen: Dict[Path, str] = {}
        for codec in self._enabled_codecs():
            output_path = CompressionJob.derive_output_path(source.path, codec.name, output_dir)
            if output_path in seen:
                raise ValueError(f"Codecs {seen[output_path]} and {codec.name} would both write {output_path}")
            seen[output_path] = codec.name
            jobs.append(CompressionJob(source_file=source, codec=codec.name, output_path=output_path))
        return jobs

    def _process_job(self, job: CompressionJob):
        general = self.config.general
        descriptor = get_codec(job.codec, self.codecs)
        self.event_bus.publish(JobStarted(job=job))
        pipeline = CompressionPipeline(
            job,
            chunk_size=general.chunk_size,
            event_bus=self.event_bus,
            codec_factory=descriptor.create,
            cancel_event=self._cancel_event,
            delete_partial_output=general.delete_partial_output,
            progress_interval=general.progress_interval,
            debug=general.debug
        )
        return pipeline.run()

    def _collect(self, future: concurrent.futures.Future, job: CompressionJob, summary: RunSummary):
        try:
            result = future.result()
        except PipelineError as e:
            summary.failed_jobs.append(job)
            self.event_bus.publish(JobFailed(job=job, error_message=job.error_message or str(e)))
            return
        except Exception as e:
            # Failures before the pipeline could tag them (e.g. unknown codec name)
            self.logger.exception(f"Job {job.codec} crashed")
            job.status = JobStatus.FAILED
            job.error_message = job.error_message or f"Exception: {e}"
            summary.failed_jobs.append(job)
            self.event_bus.publish(JobFailed(job=job, error_message=job.error_message))
            return

        summary.results.append(result)
        self.logger.info(
            f"{result.codec}: {result.original_size} -> {result.compressed_size} bytes "
            f"({result.reduction_percentage:.1f}%, {result.throughput} B/s)"
        )
        self.event_bus.publish(JobCompleted(job=job, result=result))

    def run(self, input_path: Path) -> RunSummary:
        try:
            source = InputFile.from_path(input_path)
        except OSError as e:
            raise InputNotFound(f"Cannot stat input file {input_path}: {e}") from e
        if not input_path.is_file():
            raise InputNotFound(f"Input {input_path} is not a regular file")

        jobs = self.build_jobs(source)
        self._output_dir().mkdir(parents=True, exist_ok=True)
        self.event_bus.publish(RunStarted(
            input_path=input_path,
            input_size=source.size_bytes,
            codecs=[job.codec for job in jobs]
        ))
        self.logger.info(f"Racing {len(jobs)} codecs on {input_path} ({source.size_bytes} bytes)")

        summary = RunSummary()
        if not jobs:
            self.event_bus.publish(RunFinished(succeeded=0, failed=0))
            return summary

        max_workers = min(len(jobs), self.config.general.threads)
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ccmp") as executor:
            in_flight = {executor.submit(self._process_job, job): job for job in jobs}

            while in_flight:
                try:
                    done, _ = concurrent.futures.wait(
                        set(in_flight.keys()),
                        return_when=concurrent.futures.FIRST_COMPLETED
                    )
                except KeyboardInterrupt:
                    # Running jobs stop at their next chunk and close their handles
                    self.logger.warning("Interrupted, cancelling running jobs")
                    self.event_bus.publish(RequestShutdown())
                    continue

                for future in done:
                    self._collect(future, in_flight.pop(future), summary)

        self.event_bus.publish(RunFinished(
            succeeded=len(summary.results),
            failed=len(summary.failed_jobs)
        ))
        return summary
