"""Run external URL producers and capture their output as candidate lines."""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Iterator, Mapping

from ..config import ProducerMode, SourceConfig
from ..logging_conf import source_logger
from .lineset import ENCODING, ERRORS

# Live tool processes, mapped to whether each leads its own session
_LIVE_PROCESSES: dict[subprocess.Popen, bool] = {}
_LIVE_LOCK = Lock()


def _kill(process: subprocess.Popen, own_session: bool) -> None:
    try:
        if own_session:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


def running_producer_count() -> int:
    with _LIVE_LOCK:
        return len(_LIVE_PROCESSES)


def terminate_running_producers() -> int:
    """Kill every tool still running; each such run then fails like any other producer failure."""

    with _LIVE_LOCK:
        processes = list(_LIVE_PROCESSES.items())
    for process, own_session in processes:
        _kill(process, own_session)
    return len(processes)


@dataclass(slots=True)
class ProducerContext:
    """Per-invocation inputs shared by every producer of a run."""

    target: str
    shell: str = "sh"
    env: Mapping[str, str] | None = None
    tmp_dir: Path | None = None

    def environment(self) -> Mapping[str, str]:
        return self.env if self.env is not None else os.environ


def render_command(
    source: SourceConfig,
    target: str,
    output_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Fill the placeholders of a source command.

    Plain substitution rather than ``str.format`` so that braces belonging to
    the command itself (awk, jq) are left untouched.
    """

    environment = env if env is not None else os.environ
    values = {
        "{target}": shlex.quote(target),
        "{output_path}": shlex.quote(str(output_path)) if output_path is not None else "",
        "{api_key}": environment.get(source.api_key_env, "") if source.api_key_env else "",
    }
    command = source.command
    for placeholder, value in values.items():
        command = command.replace(placeholder, value)
    return command


class ProducerResult:
    """Candidate lines spooled on disk; empty when the producer failed."""

    def __init__(
        self,
        source_name: str,
        spool: Path | None,
        *,
        error: str | None = None,
        returncode: int | None = None,
        duration: float = 0.0,
    ) -> None:
        self.source_name = source_name
        self.spool = spool
        self.error = error
        self.returncode = returncode
        self.duration = duration

    @property
    def ok(self) -> bool:
        return self.error is None

    def lines(self) -> Iterator[str]:
        if not self.ok or self.spool is None or not self.spool.exists():
            return
        with self.spool.open("r", encoding=ENCODING, errors=ERRORS, newline="\n") as stream:
            yield from stream

    def close(self) -> None:
        if self.spool is not None:
            self.spool.unlink(missing_ok=True)
            self.spool = None

    def __enter__(self) -> "ProducerResult":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ProducerRunner(ABC):
    """Execute one source command; failures become an empty contribution."""

    captures_stdout = True

    def __init__(self, source: SourceConfig) -> None:
        self.source = source

    @abstractmethod
    def command(self, context: ProducerContext, spool: Path) -> str:
        """Return the shell command to execute for this run."""

    def run(self, context: ProducerContext) -> ProducerResult:
        log = source_logger(self.source.name)
        if self.source.api_key_env and not context.environment().get(self.source.api_key_env):
            log.warning("api_key_missing", env_var=self.source.api_key_env)

        fd, spool_name = tempfile.mkstemp(
            prefix=f"ufinder-{self.source.name}-", suffix=".out", dir=context.tmp_dir
        )
        os.close(fd)
        spool = Path(spool_name)
        started = time.monotonic()
        try:
            command = self.command(context, spool)
            log.debug("producer_started", mode=self.source.mode.value, command=command)
            returncode = self._execute(command, context, spool)
        except subprocess.TimeoutExpired:
            return self._failed(spool, started, f"timed out after {self.source.timeout}s")
        except OSError as exc:
            return self._failed(spool, started, f"execution failed: {exc}")
        if returncode != 0:
            return self._failed(spool, started, f"exit status {returncode}", returncode)
        duration = time.monotonic() - started
        log.info("producer_finished", duration=round(duration, 3))
        return ProducerResult(self.source.name, spool, returncode=returncode, duration=duration)

    def _execute(self, command: str, context: ProducerContext, spool: Path) -> int:
        env = dict(context.env) if context.env is not None else None
        # Untimed tools stay in our process group so a terminal Ctrl-C reaches them
        own_session = self.source.timeout is not None
        sink_ctx = spool.open("wb") if self.captures_stdout else nullcontext(subprocess.DEVNULL)
        with sink_ctx as sink:
            process = subprocess.Popen(
                [context.shell, "-c", command],
                stdin=subprocess.DEVNULL,
                stdout=sink,
                stderr=subprocess.DEVNULL,
                env=env,
                start_new_session=own_session,
            )
            with _LIVE_LOCK:
                _LIVE_PROCESSES[process] = own_session
            try:
                return process.wait(timeout=self.source.timeout)
            except subprocess.TimeoutExpired:
                # Kill the whole session so tools spawned by the shell die too
                _kill(process, own_session)
                process.wait()
                raise
            finally:
                with _LIVE_LOCK:
                    _LIVE_PROCESSES.pop(process, None)

    def _failed(
        self, spool: Path, started: float, reason: str, returncode: int | None = None
    ) -> ProducerResult:
        spool.unlink(missing_ok=True)
        duration = time.monotonic() - started
        source_logger(self.source.name).error(
            "producer_failed", reason=reason, duration=round(duration, 3)
        )
        return ProducerResult(
            self.source.name, None, error=reason, returncode=returncode, duration=duration
        )


class StreamProducer(ProducerRunner):
    """Tool prints URLs on standard output."""

    def command(self, context: ProducerContext, spool: Path) -> str:
        return render_command(self.source, context.target, env=context.environment())


class PathProducer(ProducerRunner):
    """Tool writes URLs to a file path it is given; that path is the private spool."""

    captures_stdout = False

    def command(self, context: ProducerContext, spool: Path) -> str:
        return render_command(
            self.source, context.target, output_path=spool, env=context.environment()
        )


def build_producer(source: SourceConfig) -> ProducerRunner:
    if source.mode is ProducerMode.PATH:
        return PathProducer(source)
    return StreamProducer(source)


__all__ = [
    "PathProducer",
    "ProducerContext",
    "ProducerResult",
    "ProducerRunner",
    "StreamProducer",
    "build_producer",
    "render_command",
    "running_producer_count",
    "terminate_running_producers",
]
