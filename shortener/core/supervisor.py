"""
Worker Supervisor

Runs the service either as a single process (development) or as one
coordinator plus N worker processes (production).

Production mode:
- The coordinator binds the listening socket once and hands it to every
  worker, so all workers accept on the same port
- Each worker is a separate process running its own uvicorn server and
  its own store, cache and click accumulator (nothing is shared)
- A worker that exits while the coordinator is running is replaced

Restart policy:
- Replacement is delayed with exponential backoff per worker slot
  (base, 2*base, 4*base, ... capped at backoff_max)
- A worker that stayed up for stable_after seconds starts a fresh streak
- More than max_crashes crashes across all slots within window seconds
  trips the crash-loop breaker: every worker is stopped and the
  coordinator exits non-zero instead of spinning

SIGINT/SIGTERM stop the coordinator, which terminates all workers, waits
for them for a grace period and kills whatever is left.
"""

import logging
import multiprocessing
import signal
import socket
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Protocol

import uvicorn

from shortener.core.exceptions import CrashLoopDetectedError
from shortener.core.logging_config import configure_logging
from shortener.core.setting import Settings, settings as default_settings

logger = logging.getLogger(__name__)

APP_PATH = "shortener.main:app"
STARTUP_FAILURE_EXIT_CODE = 3


class WorkerProcess(Protocol):
    """The subset of multiprocessing.Process the supervisor relies on."""
    pid: Optional[int]
    exitcode: Optional[int]

    def start(self) -> None: ...
    def is_alive(self) -> bool: ...
    def terminate(self) -> None: ...
    def kill(self) -> None: ...
    def join(self, timeout: Optional[float] = None) -> None: ...


@dataclass
class RestartPolicy:
    """Backoff and crash-loop limits for replacing dead workers."""
    backoff_base: float = 0.5
    backoff_max: float = 30.0
    stable_after: float = 30.0
    max_crashes: int = 10
    window: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RestartPolicy":
        return cls(
            backoff_base=settings.RESTART_BACKOFF_BASE,
            backoff_max=settings.RESTART_BACKOFF_MAX,
            stable_after=settings.RESTART_STABLE_AFTER,
            max_crashes=settings.RESTART_MAX_CRASHES,
            window=settings.RESTART_WINDOW_SECONDS,
        )

    def delay(self, streak: int) -> float:
        """Seconds to wait before the restart that follows crash number ``streak``."""
        if streak < 1:
            return 0.0
        return min(self.backoff_max, self.backoff_base * 2 ** (streak - 1))


@dataclass
class WorkerSlot:
    """One of the N worker positions the coordinator keeps filled."""
    index: int
    process: Optional[WorkerProcess] = None
    started_at: float = 0.0
    streak: int = 0
    restart_at: Optional[float] = None


class WorkerSupervisor:
    """
    Coordinator that keeps ``worker_count`` worker processes running.

    ``spawn`` builds an unstarted process for a slot index; ``clock`` is
    a monotonic time source. Both are injectable so the restart logic can
    be driven step by step with check_workers().
    """

    def __init__(
        self,
        worker_count: int,
        spawn: Callable[[int], WorkerProcess],
        policy: Optional[RestartPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = 0.5,
        shutdown_grace: float = 10.0,
    ):
        if worker_count < 1:
            raise ValueError(f"worker_count must be positive, got {worker_count}")
        self.spawn = spawn
        self.policy = policy or RestartPolicy()
        self.clock = clock
        self.poll_interval = poll_interval
        self.shutdown_grace = shutdown_grace

        self.slots: List[WorkerSlot] = [WorkerSlot(index=i) for i in range(worker_count)]
        self.restarts = 0
        self._crash_times: Deque[float] = deque()
        self._stop = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        logger.info(f"Primary running, starting {len(self.slots)} workers")
        for slot in self.slots:
            self._start_worker(slot)

    def check_workers(self) -> None:
        """
        One monitoring pass: start due replacements and detect dead workers.

        Raises:
            CrashLoopDetectedError: If the crash-loop breaker trips
        """
        if self.stopping:
            return

        now = self.clock()
        for slot in self.slots:
            if slot.restart_at is not None:
                if now >= slot.restart_at:
                    self.restarts += 1
                    self._start_worker(slot)
                continue

            process = slot.process
            if process is None or process.is_alive():
                continue

            self._handle_exit(slot, process, now)

    def request_stop(self, signum: Optional[int] = None, frame=None) -> None:
        if signum is not None:
            logger.info(f"Received signal {signal.Signals(signum).name}, shutting down")
        self._stop.set()

    def run(self) -> int:
        """
        Start the workers and supervise them until stopped.

        Returns:
            Process exit status for the coordinator
        """
        signal.signal(signal.SIGINT, self.request_stop)
        signal.signal(signal.SIGTERM, self.request_stop)

        exit_code = 0
        self.start()
        try:
            while not self.stopping:
                self.check_workers()
                self._stop.wait(self.poll_interval)
        except CrashLoopDetectedError as e:
            logger.critical(f"Crash loop detected ({e}), giving up")
            exit_code = 1
        finally:
            self.shutdown()
        return exit_code

    def shutdown(self) -> None:
        """Terminate every worker, wait for the grace period, kill survivors."""
        self._stop.set()
        running = [
            slot.process for slot in self.slots
            if slot.process is not None and slot.process.is_alive()
        ]
        for process in running:
            process.terminate()

        deadline = self.clock() + self.shutdown_grace
        for process in running:
            process.join(timeout=max(0.0, deadline - self.clock()))

        for process in running:
            if process.is_alive():
                logger.warning(f"Worker {process.pid} did not exit in time, killing it")
                process.kill()
                process.join()

        for slot in self.slots:
            slot.restart_at = None
        logger.info("All workers stopped")

    def _start_worker(self, slot: WorkerSlot) -> None:
        process = self.spawn(slot.index)
        process.start()
        slot.process = process
        slot.started_at = self.clock()
        slot.restart_at = None
        logger.info(f"Worker {process.pid} started (slot {slot.index})")

    def _handle_exit(self, slot: WorkerSlot, process: WorkerProcess, now: float) -> None:
        uptime = now - slot.started_at
        logger.warning(
            f"Worker {process.pid} died (exit code {process.exitcode}) after {uptime:.1f}s"
        )
        process.join(timeout=0)

        if uptime >= self.policy.stable_after:
            slot.streak = 0
        slot.streak += 1

        self._crash_times.append(now)
        while self._crash_times and now - self._crash_times[0] > self.policy.window:
            self._crash_times.popleft()
        if len(self._crash_times) > self.policy.max_crashes:
            raise CrashLoopDetectedError(len(self._crash_times), self.policy.window)

        delay = self.policy.delay(slot.streak)
        slot.restart_at = now + delay
        logger.info(f"Restarting worker slot {slot.index} in {delay:.2f}s (crash streak {slot.streak})")
        if delay <= 0:
            self.restarts += 1
            self._start_worker(slot)


def serve_worker(sock: socket.socket, host: str, port: int, log_level: str) -> None:
    """Worker process body: serve the app on the coordinator's socket."""
    configure_logging(log_level)
    config = uvicorn.Config(
        APP_PATH,
        host=host,
        port=port,
        log_config=None,
        access_log=False,
    )
    server = uvicorn.Server(config)
    server.run(sockets=[sock])
    if not server.started:
        sys.exit(STARTUP_FAILURE_EXIT_CODE)


@dataclass
class WorkerLauncher:
    """Builds worker processes that share the coordinator's listening socket."""
    sock: socket.socket
    host: str
    port: int
    log_level: str = "INFO"
    context: multiprocessing.context.BaseContext = field(
        default_factory=lambda: multiprocessing.get_context("spawn")
    )

    def __call__(self, index: int) -> WorkerProcess:
        return self.context.Process(
            target=serve_worker,
            args=(self.sock, self.host, self.port, self.log_level),
            name=f"shortener-worker-{index}",
        )


def main(settings: Optional[Settings] = None) -> int:
    """Console entry point: single process in development, supervised workers in production."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    if not settings.is_production:
        logger.info(f"Starting in single-process mode on {settings.HOST}:{settings.PORT}")
        uvicorn.run(
            APP_PATH,
            host=settings.HOST,
            port=settings.PORT,
            log_config=None,
            access_log=False,
        )
        return 0

    config = uvicorn.Config(APP_PATH, host=settings.HOST, port=settings.PORT, log_config=None)
    sock = config.bind_socket()
    supervisor = WorkerSupervisor(
        settings.worker_count,
        WorkerLauncher(sock, settings.HOST, settings.PORT, settings.LOG_LEVEL),
        RestartPolicy.from_settings(settings),
    )
    try:
        return supervisor.run()
    finally:
        sock.close()
