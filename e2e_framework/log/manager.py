"""
Logging Manager

Parallel-safe log isolation for test runs. Each worker process owns one
LoggingManager; named loggers handed out by it write to files scoped to
the current worker and, while a scenario runs, to a scenario file.

Layout under the log directory:
    main.log                          no worker context yet
    worker-<id>/worker.log            per worker process
    worker-<id>/scenario_<name>.log   per scenario
    errors.log                        ERROR and above, all contexts

Typical lifecycle:
    manager.set_worker_context("0-0")        # session start
    manager.set_scenario_context("Login")    # scenario start
    manager.clear_scenario_context()         # scenario end
    await manager.flush_all()                # session end
"""

import asyncio
import logging
import os
import re
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from ..config import ConfigResolver, Settings
from .formatters import ConsoleFormatter, ContextFilter, FileFormatter

logger = logging.getLogger(__name__)

MAX_SCENARIO_NAME_LENGTH = 120

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")

MIB = 1024 * 1024


def sanitize_scenario_name(name: str) -> str:
    """Map a scenario name to a filesystem-safe token."""
    return _UNSAFE_CHARS.sub("_", name)[:MAX_SCENARIO_NAME_LENGTH]


@dataclass
class LoggingContext:
    """Worker and scenario the process is currently executing"""
    worker_id: Optional[str] = None
    scenario_name: Optional[str] = None


class LoggerHandle(logging.LoggerAdapter):
    """
    Named logger handed out by the manager.

    The handle object for a label never changes; only the sinks behind it
    are swapped when the worker or scenario context changes.
    """

    def __init__(self, label: str, logger: logging.Logger):
        super().__init__(logger, {})
        self.label = label

    def process(self, msg, kwargs):
        return msg, kwargs

    @property
    def sinks(self) -> List[logging.Handler]:
        return list(self.logger.handlers)

    def _set_sinks(self, sinks: List[logging.Handler]):
        for sink in list(self.logger.handlers):
            self.logger.removeHandler(sink)
        for sink in sinks:
            self.logger.addHandler(sink)

    def __repr__(self):
        return f"<LoggerHandle {self.label} sinks={len(self.logger.handlers)}>"


class LoggingManager:
    """
    Process-wide registry of named loggers with worker/scenario scoping.

    One instance per worker process. Not safe to drive from two threads;
    the test runner executes one scenario at a time per worker.
    """

    WORKER_LOG_MAX_BYTES = 10 * MIB
    WORKER_LOG_BACKUPS = 5
    ERROR_LOG_MAX_BYTES = 10 * MIB
    ERROR_LOG_BACKUPS = 3
    SCENARIO_LOG_MAX_BYTES = 5 * MIB
    SCENARIO_LOG_BACKUPS = 2

    def __init__(
        self,
        log_dir: Optional[Union[str, Path]] = None,
        level: Optional[Union[str, int]] = None,
        console: bool = True
    ):
        """
        Initialize the manager.

        Args:
            log_dir: Root log directory (default: $LOG_DIR or ./logs)
            level: Logger level (default: $LOG_LEVEL or INFO)
            console: Attach a console sink to every logger
        """
        self.log_dir = Path(log_dir or os.getenv("LOG_DIR") or Path.cwd() / "logs")
        level = level or os.getenv("LOG_LEVEL") or "INFO"
        self.level = level.upper() if isinstance(level, str) else level
        self.console = console

        self.context = LoggingContext()
        self._handles: Dict[str, LoggerHandle] = {}
        self._base_sinks: Optional[List[logging.Handler]] = None
        self._scenario_sink: Optional[logging.Handler] = None
        self._flushed = False
        self._previous_excepthook = None

    @classmethod
    def from_settings(cls, settings: Settings, console: bool = True) -> "LoggingManager":
        """Manager using the resolved log directory and level."""
        return cls(log_dir=settings.log_dir, level=settings.log_level, console=console)

    # ==================== Properties ====================

    @property
    def worker_id(self) -> Optional[str]:
        return self.context.worker_id

    @property
    def scenario_name(self) -> Optional[str]:
        return self.context.scenario_name

    @property
    def scenario_sink(self) -> Optional[logging.Handler]:
        return self._scenario_sink

    @property
    def labels(self) -> List[str]:
        return list(self._handles)

    @property
    def worker_dir(self) -> Path:
        """Directory for the current worker, or the log root without one."""
        return self._worker_dir_for(self.context.worker_id)

    def _worker_dir_for(self, worker_id: Optional[str]) -> Path:
        if worker_id:
            return self.log_dir / f"worker-{worker_id}"
        return self.log_dir

    def log_file_for_scenario(self, name: str) -> Path:
        return self.worker_dir / f"scenario_{sanitize_scenario_name(name)}.log"

    # ==================== Loggers ====================

    def get_logger(self, label: str = "Framework") -> LoggerHandle:
        """
        Return the cached logger for `label`, creating it on first use.

        New loggers pick up the current worker sinks and the active
        scenario sink, if any.
        """
        handle = self._handles.get(label)
        if handle is None:
            handle = self._create_handle(label)
            self._handles[label] = handle
            # Fresh handles after a flush must be flushable again
            self._flushed = False
        return handle

    def _create_handle(self, label: str) -> LoggerHandle:
        # Not registered with logging.getLogger; each manager owns its loggers
        base = logging.Logger(f"e2e_framework.{label}")
        base.propagate = False
        base.setLevel(self.level)
        base.addFilter(ContextFilter(label, self.context))

        handle = LoggerHandle(label, base)
        handle._set_sinks(self._current_sinks())
        return handle

    def _current_sinks(self) -> List[logging.Handler]:
        if self._base_sinks is None:
            self._base_sinks = self._build_base_sinks(self.context.worker_id)
        sinks = list(self._base_sinks)
        if self._scenario_sink is not None:
            sinks.append(self._scenario_sink)
        return sinks

    def _build_base_sinks(self, worker_id: Optional[str]) -> List[logging.Handler]:
        sinks: List[logging.Handler] = []

        if self.console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(ConsoleFormatter())
            sinks.append(console)

        if worker_id:
            target = self._worker_dir_for(worker_id) / "worker.log"
        else:
            target = self.log_dir / "main.log"
        sinks.append(self._file_sink(target, self.WORKER_LOG_MAX_BYTES, self.WORKER_LOG_BACKUPS))

        errors = self._file_sink(
            self.log_dir / "errors.log", self.ERROR_LOG_MAX_BYTES, self.ERROR_LOG_BACKUPS
        )
        errors.setLevel(logging.ERROR)
        sinks.append(errors)

        return sinks

    def _file_sink(self, path: Path, max_bytes: int, backups: int) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backups,
            encoding="utf-8",
            delay=True
        )
        sink.setFormatter(FileFormatter())
        return sink

    # ==================== Worker Context ====================

    def set_worker_context(self, worker_id: str) -> bool:
        """
        Scope every logger to a per-worker directory.

        Repeated calls with the current id are no-ops. On a change the old
        worker sinks are closed (flushing buffered lines), new ones are
        created under worker-<id>/ and the active scenario sink, if any,
        is re-attached. Handles keep their identity.

        If the worker directory cannot be created the previous context and
        sinks stay in place, so a later call with the same id retries.

        Returns:
            True if the worker context is now `worker_id`
        """
        if self.context.worker_id == worker_id:
            return True

        try:
            self._worker_dir_for(worker_id).mkdir(parents=True, exist_ok=True)
            new_sinks = self._build_base_sinks(worker_id)
        except OSError as e:
            logger.debug(f"Cannot switch logs to worker {worker_id}: {e}")
            return False

        self.context.worker_id = worker_id
        old_sinks = self._base_sinks or []
        self._base_sinks = new_sinks

        sinks = self._current_sinks()
        for handle in self._handles.values():
            handle._set_sinks(sinks)

        for sink in old_sinks:
            _close_quietly(sink)
        return True

    # ==================== Scenario Context ====================

    def set_scenario_context(self, name: str) -> Path:
        """
        Attach a scenario log file to every live logger.

        A previously active scenario sink is detached and closed first.

        Returns:
            Path of the scenario log file
        """
        if self._scenario_sink is not None:
            self.clear_scenario_context()

        path = self.log_file_for_scenario(name)
        sink = self._file_sink(path, self.SCENARIO_LOG_MAX_BYTES, self.SCENARIO_LOG_BACKUPS)

        self.context.scenario_name = name
        self._scenario_sink = sink
        for handle in self._handles.values():
            handle.logger.addHandler(sink)

        return path

    def clear_scenario_context(self):
        """Detach and close the scenario sink. Safe when none is active."""
        sink = self._scenario_sink
        self._scenario_sink = None
        self.context.scenario_name = None

        if sink is None:
            return

        for handle in self._handles.values():
            handle.logger.removeHandler(sink)
        _close_quietly(sink)

    @contextmanager
    def scenario_context(self, name: str) -> Iterator[Path]:
        """Scenario scope that is always cleared, even when the body raises."""
        path = self.set_scenario_context(name)
        try:
            yield path
        finally:
            self.clear_scenario_context()

    # ==================== Uncaught Errors ====================

    def install_exception_hooks(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        label: str = "Uncaught"
    ):
        """
        Route uncaught exceptions into the logs, and so into errors.log.

        Wraps sys.excepthook, chaining to the previous hook. With `loop`, also
        installs an event loop exception handler for failures in tasks that
        nobody awaited.
        """
        if self._previous_excepthook is None:
            previous = sys.excepthook
            self._previous_excepthook = previous

            def excepthook(exc_type, exc, tb):
                if not issubclass(exc_type, KeyboardInterrupt):
                    self.get_logger(label).error(
                        f"Uncaught exception: {exc_type.__name__}: {exc}",
                        exc_info=(exc_type, exc, tb)
                    )
                previous(exc_type, exc, tb)

            sys.excepthook = excepthook

        if loop is not None:
            def handle_loop_error(event_loop, context):
                message = context.get("message", "Unhandled error in event loop")
                exc = context.get("exception")
                if exc is not None:
                    self.get_logger(label).error(
                        f"{message}: {exc}",
                        exc_info=(type(exc), exc, exc.__traceback__)
                    )
                else:
                    self.get_logger(label).error(message)
                event_loop.default_exception_handler(context)

            loop.set_exception_handler(handle_loop_error)

    def uninstall_exception_hooks(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Restore the hooks replaced by install_exception_hooks."""
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
            self._previous_excepthook = None
        if loop is not None:
            loop.set_exception_handler(None)

    # ==================== Lifecycle ====================

    async def flush_all(self):
        """
        Flush and close every sink, then empty the registry.

        A second call is a no-op until new loggers are requested.
        """
        if self._flushed:
            return
        self._flushed = True

        self.clear_scenario_context()

        sinks = self._base_sinks or []
        self._base_sinks = None
        for handle in self._handles.values():
            handle._set_sinks([])
        self._handles = {}

        loop = asyncio.get_running_loop()
        for sink in sinks:
            await loop.run_in_executor(None, _close_quietly, sink)

    def reset(self):
        """Close everything synchronously and forget all context."""
        self.uninstall_exception_hooks()

        if self._scenario_sink is not None:
            _close_quietly(self._scenario_sink)
            self._scenario_sink = None

        for handle in self._handles.values():
            handle._set_sinks([])
        for sink in self._base_sinks or []:
            _close_quietly(sink)

        self._base_sinks = None
        self._handles = {}
        self.context.worker_id = None
        self.context.scenario_name = None
        self._flushed = False


def _close_quietly(sink: logging.Handler) -> bool:
    """Flush and close a sink. Returns False if closing failed."""
    try:
        sink.flush()
        sink.close()
        return True
    except Exception as e:
        logger.debug(f"Ignoring log sink close failure: {e}")
        return False


# ==================== Default Instance ====================

_default_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """
    Process default manager for callers that are not handed one.

    Built from the resolved configuration (env, environment file, defaults).
    """
    global _default_manager
    if _default_manager is None:
        _default_manager = LoggingManager.from_settings(ConfigResolver().settings())
    return _default_manager


def set_logging_manager(manager: Optional[LoggingManager]):
    global _default_manager
    _default_manager = manager
