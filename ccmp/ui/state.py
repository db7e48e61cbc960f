import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union
from ccmp.domain.models import CompressionJob, CompressionResult

class JobProgress:
    __slots__ = ("bytes_read", "bytes_written", "throughput")

    def __init__(self):
        self.bytes_read = 0
        self.bytes_written = 0
        self.throughput = 0

class UIState:
    """Thread-safe state shared between event handlers and the renderer."""

    def __init__(self):
        self._lock = threading.RLock()

        # Run info
        self.input_path: Optional[Path] = None
        self.input_size = 0
        self.codecs: List[str] = []
        self.start_time: Optional[datetime] = None
        self.finished = False
        self.shutdown_requested = False

        # Job tracking
        self.active_jobs: List[CompressionJob] = []
        self.progress: Dict[str, JobProgress] = {}
        self.results: List[CompressionResult] = []
        self.failed_jobs: List[CompressionJob] = []
        # Completed results and failed jobs, in the order they finished
        self.finished_log: List[Union[CompressionResult, CompressionJob]] = []

    @property
    def completed_count(self) -> int:
        with self._lock:
            return len(self.results)

    @property
    def failed_count(self) -> int:
        with self._lock:
            return len(self.failed_jobs)

    @property
    def best_result(self) -> Optional[CompressionResult]:
        with self._lock:
            if not self.results:
                return None
            return min(self.results, key=lambda r: r.compressed_size)

    def start_run(self, input_path: Path, input_size: int, codecs: List[str]):
        with self._lock:
            self.input_path = input_path
            self.input_size = input_size
            self.codecs = list(codecs)
            self.start_time = datetime.now()
            self.finished = False

    def add_active_job(self, job: CompressionJob):
        with self._lock:
            if job not in self.active_jobs:
                self.active_jobs.append(job)
            self.progress.setdefault(job.codec, JobProgress())

    def remove_active_job(self, job: CompressionJob):
        with self._lock:
            if job in self.active_jobs:
                self.active_jobs.remove(job)

    def update_progress(self, codec: str, bytes_read: int, bytes_written: int, throughput: int):
        with self._lock:
            progress = self.progress.setdefault(codec, JobProgress())
            progress.bytes_read = bytes_read
            progress.bytes_written = bytes_written
            progress.throughput = throughput

    def add_result(self, job: CompressionJob, result: CompressionResult):
        with self._lock:
            self.results.append(result)
            self.finished_log.append(result)
            self.remove_active_job(job)

    def add_failed_job(self, job: CompressionJob):
        with self._lock:
            self.failed_jobs.append(job)
            self.finished_log.append(job)
            self.remove_active_job(job)
