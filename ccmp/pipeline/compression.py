import contextlib
import logging
import threading
import time
from typing import BinaryIO, Callable, Optional
from ccmp.domain.errors import (
    CodecFailure, InputUnreadable, JobInterrupted, OutputWriteFailure, PipelineCrash, PipelineError
)
from ccmp.domain.events import JobProgressUpdated
from ccmp.domain.models import CompressionJob, CompressionResult, JobStatus
from ccmp.infrastructure.codecs import CodecAdapter, create_codec
from ccmp.infrastructure.event_bus import EventBus
from ccmp.infrastructure.monitor import RateSampler

DEFAULT_CHUNK_SIZE = 64 * 1024

class CompressionPipeline:
    """Streams one input file through one codec into its output file.

    Stages run as direct blocking calls on the caller's thread
    (read -> compress -> sample -> write), so at most one chunk plus the
    codec's internal state is in memory and a slow disk stalls the reader.
    """

    def __init__(
        self,
        job: CompressionJob,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        event_bus: Optional[EventBus] = None,
        codec_factory: Optional[Callable[[], CodecAdapter]] = None,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: Optional[threading.Event] = None,
        delete_partial_output: bool = False,
        progress_interval: float = 0.25,
        debug: bool = False
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.job = job
        self.chunk_size = chunk_size
        self.event_bus = event_bus
        self.codec_factory = codec_factory or (lambda: create_codec(job.codec))
        self.clock = clock
        self.cancel_event = cancel_event or threading.Event()
        self.delete_partial_output = delete_partial_output
        self.progress_interval = progress_interval
        self.debug = debug
        self.sampler: Optional[RateSampler] = None
        self.bytes_read = 0
        self._last_progress = 0.0
        self._output_opened = False
        self.logger = logging.getLogger(__name__)

    def _open_input(self) -> BinaryIO:
        try:
            return open(self.job.source_file.path, "rb")
        except OSError as e:
            raise InputUnreadable(f"cannot open {self.job.source_file.path}: {e}", codec=self.job.codec) from e

    def _open_output(self) -> BinaryIO:
        try:
            return open(self.job.output_path, "wb")
        except OSError as e:
            raise OutputWriteFailure(f"cannot open {self.job.output_path}: {e}", codec=self.job.codec) from e

    def _read(self, source: BinaryIO) -> bytes:
        try:
            return source.read(self.chunk_size)
        except OSError as e:
            raise InputUnreadable(f"read failed on {self.job.source_file.path}: {e}", codec=self.job.codec) from e

    def _write(self, sink: BinaryIO, data: bytes):
        if not data:
            return
        try:
            sink.write(data)
        except OSError as e:
            raise OutputWriteFailure(f"write failed on {self.job.output_path}: {e}", codec=self.job.codec) from e

    @contextlib.contextmanager
    def _codec_errors(self):
        """Tags anything the codec raises as a codec failure."""
        try:
            yield
        except PipelineError:
            raise
        except Exception as e:
            raise CodecFailure(f"{type(e).__name__}: {e}", codec=self.job.codec) from e

    def _publish_progress(self, force: bool = False):
        if self.event_bus is None:
            return
        now = self.clock()
        if not force and now - self._last_progress < self.progress_interval:
            return
        self._last_progress = now
        self.event_bus.publish(JobProgressUpdated(
            job=self.job,
            bytes_read=self.bytes_read,
            bytes_written=self.sampler.byte_count,
            throughput=self.sampler.throughput
        ))

    def _pump(self, source: BinaryIO, sink: BinaryIO, codec: CodecAdapter):
        while True:
            if self.cancel_event.is_set():
                raise JobInterrupted("cancelled by user", codec=self.job.codec)
            chunk = self._read(source)
            if not chunk:
                break
            self.bytes_read += len(chunk)
            with self._codec_errors():
                compressed = codec.compress(chunk)
            self._write(sink, self.sampler.observe(compressed))
            self._publish_progress()

        with self._codec_errors():
            tail = codec.flush()
        self._write(sink, self.sampler.observe(tail))

    def _close_sink(self, sink: BinaryIO):
        try:
            sink.close()
        except OSError as e:
            raise OutputWriteFailure(f"close failed on {self.job.output_path}: {e}", codec=self.job.codec) from e

    def _cleanup_partial(self):
        if not self.delete_partial_output or not self._output_opened:
            return
        try:
            self.job.output_path.unlink()
            self.logger.info(f"Removed partial output {self.job.output_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove partial output {self.job.output_path}: {e}")

    def run(self) -> CompressionResult:
        """Runs the job to completion. Raises a ``PipelineError`` subclass on failure."""
        job = self.job
        original_size = job.source_file.size_bytes
        start_time = self.clock()
        job.status = JobStatus.PROCESSING

        if self.debug:
            self.logger.info(f"PIPELINE_START: {job.codec} {job.source_file.path} -> {job.output_path}")

        source = None
        try:
            # Queued jobs that start after a shutdown request must not truncate existing output
            if self.cancel_event.is_set():
                raise JobInterrupted("cancelled before start", codec=job.codec)
            source = self._open_input()
            sink = self._open_output()
            self._output_opened = True
            try:
                with self._codec_errors():
                    codec = self.codec_factory()
                self.sampler = RateSampler(clock=self.clock)
                self._pump(source, sink, codec)
                self.sampler.finish()
            except BaseException:
                with contextlib.suppress(OSError):
                    sink.close()
                raise
            self._close_sink(sink)
        except PipelineError as e:
            job.status = JobStatus.INTERRUPTED if isinstance(e, JobInterrupted) else JobStatus.FAILED
            job.failed_stage = e.stage
            job.error_message = str(e)
            job.duration_seconds = self.clock() - start_time
            self._cleanup_partial()
            self.logger.error(f"{job.codec} failed: {e}")
            raise
        except Exception as e:
            # e.g. a progress subscriber raising
            crash = PipelineCrash(f"{type(e).__name__}: {e}", codec=job.codec)
            job.status = JobStatus.FAILED
            job.failed_stage = crash.stage
            job.error_message = str(crash)
            job.duration_seconds = self.clock() - start_time
            self._cleanup_partial()
            self.logger.exception(f"{job.codec} failed unexpectedly")
            raise crash from e
        finally:
            if source is not None:
                source.close()

        self._publish_progress(force=True)
        duration = self.clock() - start_time
        job.status = JobStatus.COMPLETED
        job.duration_seconds = duration
        final_size = self.sampler.byte_count

        if self.debug:
            self.logger.info(f"PIPELINE_END: {job.codec} status=completed bytes={final_size} elapsed={duration:.2f}s")

        return CompressionResult(
            codec=job.codec,
            original_size=original_size,
            compressed_size=final_size,
            reduction_percentage=CompressionResult.reduction(original_size, final_size),
            throughput=self.sampler.throughput,
            output_path=job.output_path,
            duration_seconds=duration
        )
