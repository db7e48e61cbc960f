import os
import pytest
from pathlib import Path
from ccmp.config.models import AppConfig, GeneralConfig

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now

@pytest.fixture
def fake_clock():
    return FakeClock()

@pytest.fixture
def ab_file(tmp_path) -> Path:
    """1,000,000 bytes of repeating "AB"."""
    f = tmp_path / "pattern.bin"
    f.write_bytes(b"AB" * 500_000)
    return f

@pytest.fixture
def random_file(tmp_path) -> Path:
    """1,000,000 random (incompressible) bytes."""
    f = tmp_path / "random.bin"
    f.write_bytes(os.urandom(1_000_000))
    return f

@pytest.fixture
def empty_file(tmp_path) -> Path:
    f = tmp_path / "empty.txt"
    f.write_bytes(b"")
    return f

@pytest.fixture
def out_dir(tmp_path) -> Path:
    d = tmp_path / "out"
    d.mkdir()
    return d

@pytest.fixture
def app_config(out_dir) -> AppConfig:
    return AppConfig(general=GeneralConfig(
        output_dir=out_dir,
        chunk_size=16 * 1024,
        progress_interval=0.0
    ))
