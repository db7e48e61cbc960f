import concurrent.futures
import threading
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch
from ccmp.config.models import AppConfig, GeneralConfig
from ccmp.domain.errors import CodecFailure, InputNotFound
from ccmp.domain.events import JobCompleted, JobFailed, JobStarted, RequestShutdown, RunFinished, RunStarted
from ccmp.domain.models import InputFile, JobStatus
from ccmp.infrastructure.codecs import CODECS, CodecDescriptor, GzipAdapter
from ccmp.infrastructure.event_bus import EventBus
from ccmp.pipeline.orchestrator import Orchestrator

class FailingAdapter(GzipAdapter):
    def _process(self, chunk: bytes) -> bytes:
        raise CodecFailure("simulated", codec="Broken")

class GatedAdapter(GzipAdapter):
    """Holds every chunk until the gate opens."""

    def __init__(self, gate: threading.Event):
        super().__init__()
        self.gate = gate

    def _process(self, chunk: bytes) -> bytes:
        self.gate.wait(timeout=5)
        return super()._process(chunk)

def interrupt_first_wait(gate: threading.Event):
    """Raises KeyboardInterrupt from the first wait, then opens the gate."""
    real_wait = concurrent.futures.wait
    calls = []

    def fake_wait(futures, return_when=None):
        calls.append(return_when)
        if len(calls) == 1:
            raise KeyboardInterrupt
        gate.set()
        return real_wait(futures, return_when=return_when)
    return fake_wait

def _events(bus: MagicMock):
    return [c.args[0] for c in bus.publish.call_args_list]

def test_build_jobs_one_per_codec(tmp_path):
    config = AppConfig(general=GeneralConfig(output_dir=tmp_path))
    orchestrator = Orchestrator(config=config, event_bus=EventBus())
    source = InputFile(path=Path("/elsewhere/archive.tar"), size_bytes=10)

    jobs = orchestrator.build_jobs(source)

    assert [j.codec for j in jobs] == ["Gzip", "Brotli", "Deflate"]
    assert [j.output_path for j in jobs] == [
        tmp_path / "archive.tar.gzip",
        tmp_path / "archive.tar.brotli",
        tmp_path / "archive.tar.deflate",
    ]
    assert all(j.status == JobStatus.PENDING for j in jobs)

def test_build_jobs_defaults_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    orchestrator = Orchestrator(config=AppConfig(), event_bus=EventBus())
    jobs = orchestrator.build_jobs(InputFile(path=Path("/x/y/file.txt"), size_bytes=1))
    assert jobs[0].output_path == tmp_path / "file.txt.gzip"

def test_build_jobs_respects_codec_selection(tmp_path):
    config = AppConfig(general=GeneralConfig(output_dir=tmp_path, codecs=["deflate"]))
    jobs = Orchestrator(config=config, event_bus=EventBus()).build_jobs(
        InputFile(path=Path("a.bin"), size_bytes=1)
    )
    assert [j.codec for j in jobs] == ["Deflate"]

def test_build_jobs_rejects_colliding_paths(tmp_path):
    codecs = (CodecDescriptor("Gzip", GzipAdapter), CodecDescriptor("GZIP", GzipAdapter))
    config = AppConfig(general=GeneralConfig(output_dir=tmp_path, codecs=["Gzip"]))
    orchestrator = Orchestrator(config=config, event_bus=EventBus(), codecs=codecs)
    with pytest.raises(ValueError):
        orchestrator.build_jobs(InputFile(path=Path("a.bin"), size_bytes=1))

def test_missing_input_raises_before_any_job(tmp_path):
    bus = MagicMock()
    orchestrator = Orchestrator(config=AppConfig(general=GeneralConfig(output_dir=tmp_path)), event_bus=bus)
    with pytest.raises(InputNotFound):
        orchestrator.run(tmp_path / "missing.bin")
    assert not any(isinstance(e, JobStarted) for e in _events(bus))

def test_directory_input_is_rejected(tmp_path):
    orchestrator = Orchestrator(config=AppConfig(general=GeneralConfig(output_dir=tmp_path)), event_bus=EventBus())
    with pytest.raises(InputNotFound):
        orchestrator.run(tmp_path)

def test_run_publishes_lifecycle_events(ab_file, app_config):
    bus = MagicMock()
    summary = Orchestrator(config=app_config, event_bus=bus).run(ab_file)

    events = _events(bus)
    assert isinstance(events[0], RunStarted)
    assert events[0].input_size == 1_000_000
    assert isinstance(events[-1], RunFinished)
    assert events[-1].succeeded == 3
    assert sum(isinstance(e, JobStarted) for e in events) == 3
    assert sum(isinstance(e, JobCompleted) for e in events) == 3
    assert len(summary.results) == 3
    assert not summary.any_failed

def test_failing_codec_is_isolated(ab_file, app_config):
    codecs = (
        CodecDescriptor("Gzip", CODECS[0].factory),
        CodecDescriptor("Brotli", FailingAdapter),
        CodecDescriptor("Deflate", CODECS[2].factory),
    )
    bus = MagicMock()
    summary = Orchestrator(config=app_config, event_bus=bus, codecs=codecs).run(ab_file)

    assert sorted(r.codec for r in summary.results) == ["Deflate", "Gzip"]
    assert [j.codec for j in summary.failed_jobs] == ["Brotli"]
    assert summary.any_failed and not summary.all_failed

    failures = [e for e in _events(bus) if isinstance(e, JobFailed)]
    assert len(failures) == 1
    assert failures[0].job.failed_stage == "codec"
    assert "simulated" in failures[0].error_message

def test_all_failed(ab_file, app_config):
    codecs = tuple(CodecDescriptor(c.name, FailingAdapter) for c in CODECS)
    summary = Orchestrator(config=app_config, event_bus=EventBus(), codecs=codecs).run(ab_file)
    assert summary.all_failed
    assert len(summary.failed_jobs) == 3

def test_untagged_crash_is_reported(ab_file, app_config):
    def exploding_factory():
        raise RuntimeError("no encoder")

    codecs = (CodecDescriptor("Gzip", exploding_factory),)
    config = app_config.model_copy(deep=True)
    config.general.codecs = ["Gzip"]
    summary = Orchestrator(config=config, event_bus=EventBus(), codecs=codecs).run(ab_file)
    assert summary.all_failed
    assert "no encoder" in summary.failed_jobs[0].error_message

def test_shutdown_request_sets_cancel_flag(app_config):
    bus = EventBus()
    orchestrator = Orchestrator(config=app_config, event_bus=bus)
    assert not orchestrator.shutdown_requested
    bus.publish(RequestShutdown())
    assert orchestrator.shutdown_requested

def test_executor_sized_by_jobs_and_threads(ab_file, app_config):
    config = app_config.model_copy(deep=True)
    config.general.threads = 2
    with patch("concurrent.futures.ThreadPoolExecutor") as MockExecutor, \
         patch("concurrent.futures.wait") as MockWait:
        instance = MockExecutor.return_value.__enter__.return_value
        instance.submit.side_effect = lambda fn, job: MagicMock(result=MagicMock(side_effect=CodecFailure("x")))
        MockWait.side_effect = lambda futures, return_when=None: (set(futures), set())

        summary = Orchestrator(config=config, event_bus=EventBus()).run(ab_file)

        MockExecutor.assert_called_with(max_workers=2, thread_name_prefix="ccmp")
        assert instance.submit.call_count == 3
        assert len(summary.failed_jobs) == 3

def test_keyboard_interrupt_cancels_every_job(ab_file, app_config):
    gate = threading.Event()
    codecs = tuple(CodecDescriptor(c.name, lambda: GatedAdapter(gate)) for c in CODECS)
    bus = EventBus()
    shutdowns, failures = [], []
    bus.subscribe(RequestShutdown, shutdowns.append)
    bus.subscribe(JobFailed, failures.append)
    orchestrator = Orchestrator(config=app_config, event_bus=bus, codecs=codecs)

    with patch("concurrent.futures.wait", side_effect=interrupt_first_wait(gate)):
        summary = orchestrator.run(ab_file)

    assert orchestrator.shutdown_requested
    assert len(shutdowns) == 1
    assert summary.results == []
    assert [j.status for j in summary.failed_jobs] == [JobStatus.INTERRUPTED] * 3
    assert all(j.failed_stage == "cancel" for j in summary.failed_jobs)
    assert len(failures) == 3
