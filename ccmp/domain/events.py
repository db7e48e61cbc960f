from pathlib import Path
from typing import List
from pydantic import BaseModel
from .models import CompressionJob, CompressionResult

class Event(BaseModel):
    """Base class for all domain events."""
    pass

class JobEvent(Event):
    job: CompressionJob

class JobStarted(JobEvent):
    pass

class JobProgressUpdated(JobEvent):
    bytes_read: int
    bytes_written: int
    throughput: int

class JobCompleted(JobEvent):
    result: CompressionResult

class JobFailed(JobEvent):
    error_message: str

class RunStarted(Event):
    input_path: Path
    input_size: int
    codecs: List[str]

class RunFinished(Event):
    succeeded: int
    failed: int

class RequestShutdown(Event):
    """Emitted when the user interrupts the run (Ctrl+C)."""
    pass
