from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field

class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    INTERRUPTED = "INTERRUPTED"

class InputFile(BaseModel):
    path: Path
    size_bytes: int

    @classmethod
    def from_path(cls, path: Path) -> "InputFile":
        """Stats the file once; the size is the ratio denominator for every job."""
        return cls(path=path, size_bytes=path.stat().st_size)

class CompressionJob(BaseModel):
    source_file: InputFile
    codec: str
    output_path: Path
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None
    failed_stage: Optional[str] = None
    duration_seconds: Optional[float] = None

    @staticmethod
    def derive_output_path(source: Path, codec: str, output_dir: Path) -> Path:
        return output_dir / f"{source.name}.{codec.lower()}"

class CompressionResult(BaseModel):
    codec: str
    original_size: int
    compressed_size: int
    reduction_percentage: float
    throughput: int
    output_path: Path
    duration_seconds: float = 0.0

    @staticmethod
    def reduction(original_size: int, compressed_size: int) -> float:
        """Percentage saved, one decimal place. An empty input reports 0.0."""
        if original_size == 0:
            return 0.0
        return round((original_size - compressed_size) / original_size * 100, 1)

class RunSummary(BaseModel):
    results: List[CompressionResult] = Field(default_factory=list)
    failed_jobs: List[CompressionJob] = Field(default_factory=list)

    @property
    def any_failed(self) -> bool:
        return bool(self.failed_jobs)

    @property
    def all_failed(self) -> bool:
        return bool(self.failed_jobs) and not self.results
