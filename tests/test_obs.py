import asyncio
import json

import pytest

from core.obs import JsonRepoLogger, JsonStdoutLogger, Span, redact, with_span


pytestmark = pytest.mark.usefixtures("isolated_config")


class RecordingLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **fields):
        self.events.append(("info", event, fields))

    def warn(self, event, **fields):
        self.events.append(("warn", event, fields))

    def error(self, event, **fields):
        self.events.append(("error", event, fields))


def test_json_logger_masks_secrets_and_binds_context(monkeypatch, capsys, tmp_path):
    monkeypatch.setenv("GOOGLE_API_KEY", "AIza-secret")
    log_file = tmp_path / "out" / "gen.log"
    logger = JsonStdoutLogger(service="generation", env="test", log_path=log_file).bind(session="s1")

    logger.info("llm.request", prompt="key is AIza-secret", attempt=1)

    record = json.loads(capsys.readouterr().out.strip())
    assert record["event"] == "llm.request"
    assert record["session"] == "s1"
    assert record["prompt"] == "key is ***"
    assert record["attempt"] == 1
    assert json.loads(log_file.read_text(encoding="utf-8"))["prompt"] == "key is ***"


def test_errors_go_to_stderr(capsys):
    JsonStdoutLogger(env="test").error("llm.gave_up", attempts=3)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["level"] == "error"


def test_repo_logger_honours_obs_log_file(monkeypatch, tmp_path, capsys):
    target = tmp_path / "custom.log"
    monkeypatch.setenv("OBS_LOG_FILE", str(target))
    JsonRepoLogger(service="llm", env="test").warn("llm.retry", delay_s=1.0)
    assert json.loads(target.read_text(encoding="utf-8"))["event"] == "llm.retry"


def test_redact_passthrough():
    assert redact(None) is None
    assert redact("plain", secrets=("zzz",)) == "plain"
    assert redact("a zzz b", secrets=("zzz",)) == "a *** b"


def test_span_logs_error_and_reraises():
    logger = RecordingLogger()
    with pytest.raises(ValueError):
        with Span(logger, "job", {"ct": "resume"}):
            raise ValueError("boom")
    assert [e[1] for e in logger.events] == ["job.start", "job.error"]
    assert logger.events[1][2]["error_type"] == "ValueError"


@pytest.mark.asyncio
async def test_with_span_async_and_cancellation():
    class Worker:
        def __init__(self):
            self._logger = RecordingLogger()

        @with_span("work", fields={"kind": "test"})
        async def run(self, wait):
            await asyncio.sleep(wait)
            return "done"

    worker = Worker()
    assert await worker.run(0) == "done"
    task = asyncio.ensure_future(worker.run(10))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    names = [e[1] for e in worker._logger.events]
    assert names == ["work.start", "work.end", "work.start", "work.cancelled"]
    assert all(e[2]["kind"] == "test" for e in worker._logger.events)
