"""Logging setup and operation metrics for Vault Resort.

Detection and move runs are timed with :func:`timed_operation` (or the
:func:`traced` decorator) and aggregated per operation name in the global
:data:`metrics` collector, which the ``resort_metrics`` tool reports and
which is written to disk when the server exits.
"""
import functools
import json
import logging
import os
import re
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass, fields
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, Sized, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".vault-resort" / "logs"
DEFAULT_METRICS_FILE = Path.home() / ".vault-resort" / "metrics.json"
LOG_FILE_NAME = "vault-resort.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Every module logger lives below this one
PACKAGE_LOGGER = "vault_resort"

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send the package's log records to a rotating file (and stderr).

    Calling it again replaces the file handler instead of stacking a
    second one.

    Returns:
        The directory holding ``vault-resort.log``.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    for handler in list(package_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            package_logger.removeHandler(handler)
            handler.close()

    file_handler = RotatingFileHandler(
        log_path / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handlers = [file_handler]
    has_console = any(type(h) is logging.StreamHandler for h in package_logger.handlers)
    if console and not has_console:
        # StreamHandler defaults to stderr; stdout carries the MCP transport
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.info(f"Logging to {log_path / LOG_FILE_NAME}")
    return log_path


def _sanitize_error_message(message: Optional[str], max_length: int = 200) -> Optional[str]:
    """Make an error message safe to persist in metrics.

    Replaces the home directory with ``~``, flattens newlines, collapses
    whitespace and truncates to ``max_length`` characters.
    """
    if message is None:
        return None
    home = str(Path.home())
    if home and home != "/":
        message = message.replace(home, "~")
    message = re.sub(r"\s+", " ", message).strip()
    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


@dataclass
class OperationMetrics:
    """Running totals for one operation name."""
    count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    last_error: Optional[str] = None

    def record(self, duration_ms: float, success: bool, error: Optional[str]) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        if not success:
            self.error_count += 1
            self.last_error = _sanitize_error_message(error)

    def report(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "error_count": self.error_count,
            "avg_duration_ms": round(self.total_duration_ms / self.count, 2) if self.count else 0.0,
            "last_error": self.last_error,
        }


class MetricsCollector:
    """Thread-safe per-operation metrics with JSON persistence.

    Totals saved by an earlier run are loaded on construction, so counts
    accumulate across server restarts.

    Args:
        metrics_file: JSON file to persist to. Defaults to
            ``~/.vault-resort/metrics.json``.
        save_every: Write the file after this many recorded operations;
            0 saves only on :meth:`save_metrics`.
    """

    def __init__(
        self,
        metrics_file: Optional[Union[str, Path]] = None,
        save_every: int = 100,
    ) -> None:
        self.metrics_file = Path(metrics_file) if metrics_file else DEFAULT_METRICS_FILE
        self.save_every = save_every
        self._operations: Dict[str, OperationMetrics] = {}
        self._lock = Lock()
        self._started = time.monotonic()
        self._unsaved = 0
        self._load()

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._operations.setdefault(operation, OperationMetrics()).record(
                duration_ms, success, error
            )
            self._unsaved += 1
            if self.save_every and self._unsaved >= self.save_every:
                self._write()

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation's totals, keyed by operation name."""
        with self._lock:
            return {name: op.report() for name, op in self._operations.items()}

    def get_summary(self) -> Dict[str, Any]:
        """Totals across all operations plus this process's uptime."""
        with self._lock:
            total = sum(op.count for op in self._operations.values())
            errors = sum(op.error_count for op in self._operations.values())
        return {
            "uptime_seconds": time.monotonic() - self._started,
            "total_operations": total,
            "total_errors": errors,
            "overall_success_rate": (total - errors) / total if total else 1.0,
        }

    def reset(self) -> None:
        with self._lock:
            self._operations.clear()
            self._started = time.monotonic()
            self._unsaved = 0

    def save_metrics(self) -> bool:
        """Write the current totals to :attr:`metrics_file`."""
        with self._lock:
            return self._write()

    def _load(self) -> None:
        try:
            data = json.loads(self.metrics_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable metrics file {self.metrics_file}: {e}")
            return

        known = {f.name for f in fields(OperationMetrics)}
        for name, totals in data.get("operations", {}).items():
            self._operations[name] = OperationMetrics(
                **{k: v for k, v in totals.items() if k in known}
            )
        logger.debug(f"Loaded metrics for {len(self._operations)} operations")

    def _write(self) -> bool:
        payload = {
            "saved_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "operations": {name: asdict(op) for name, op in self._operations.items()},
        }
        temp_file = self.metrics_file.with_suffix(".tmp")
        try:
            self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(temp_file, self.metrics_file)
        except OSError as e:
            logger.error(f"Failed to save metrics to {self.metrics_file}: {e}")
            return False
        self._unsaved = 0
        return True


metrics = MetricsCollector()


def _format_details(details: Dict[str, Any]) -> str:
    return " ".join(f"{k}={v}" for k, v in details.items())


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[Dict[str, Any]]:
    """Time a block, record it in :data:`metrics` and log it at DEBUG.

    Keyword arguments and anything stored in the yielded dict are added to
    the closing log line.

    Example:
        with timed_operation("detect_resort_pairs") as op:
            pairs = detector.detect(graph)
            op["result_count"] = len(pairs)
    """
    op_id = uuid.uuid4().hex[:8]
    details: Dict[str, Any] = dict(context)
    logger.debug(f"[{op_id}] {operation} started")
    started = time.perf_counter()
    error: Optional[Exception] = None
    try:
        yield details
    except Exception as e:
        error = e
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(
            operation, elapsed_ms, error is None, str(error) if error is not None else None
        )
        outcome = "ok" if error is None else f"failed: {error}"
        logger.debug(
            f"[{op_id}] {operation} {outcome} in {elapsed_ms:.2f}ms {_format_details(details)}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run the decorated function inside :func:`timed_operation`.

    The operation is named after the function unless ``operation_name``
    is given; sized results are logged with their length.
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with timed_operation(name) as details:
                result = func(*args, **kwargs)
                if isinstance(result, Sized):
                    details["result_count"] = len(result)
                return result

        return wrapper  # type: ignore
    return decorator
