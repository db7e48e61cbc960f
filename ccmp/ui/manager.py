import logging
from ccmp.infrastructure.event_bus import EventBus
from ccmp.ui.state import UIState
from ccmp.domain.events import (
    RunStarted, RunFinished,
    JobStarted, JobCompleted, JobFailed,
    JobProgressUpdated, RequestShutdown
)

class UIManager:
    """Subscribes to EventBus and updates UIState."""

    def __init__(self, bus: EventBus, state: UIState):
        self.bus = bus
        self.state = state
        self.logger = logging.getLogger(__name__)
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(RunStarted, self.on_run_started)
        self.bus.subscribe(RunFinished, self.on_run_finished)
        self.bus.subscribe(JobStarted, self.on_job_started)
        self.bus.subscribe(JobCompleted, self.on_job_completed)
        self.bus.subscribe(JobFailed, self.on_job_failed)
        self.bus.subscribe(JobProgressUpdated, self.on_job_progress)
        self.bus.subscribe(RequestShutdown, self.on_shutdown_request)

    def on_run_started(self, event: RunStarted):
        self.state.start_run(event.input_path, event.input_size, event.codecs)

    def on_run_finished(self, event: RunFinished):
        self.logger.debug(f"UI: run finished succeeded={event.succeeded} failed={event.failed}")
        with self.state._lock:
            self.state.finished = True

    def on_job_started(self, event: JobStarted):
        self.state.add_active_job(event.job)

    def on_job_progress(self, event: JobProgressUpdated):
        self.state.update_progress(
            event.job.codec, event.bytes_read, event.bytes_written, event.throughput
        )

    def on_job_completed(self, event: JobCompleted):
        self.state.update_progress(
            event.job.codec, event.result.original_size, event.result.compressed_size, event.result.throughput
        )
        self.state.add_result(event.job, event.result)

    def on_job_failed(self, event: JobFailed):
        self.state.add_failed_job(event.job)

    def on_shutdown_request(self, event: RequestShutdown):
        with self.state._lock:
            self.state.shutdown_requested = True
