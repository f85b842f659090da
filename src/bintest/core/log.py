"""Logger with composable output sinks, backed by logfire."""

from __future__ import annotations

import contextlib
import sys
from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from bintest.core.base import BaseConfig

if TYPE_CHECKING:
    from logfire import ConsoleOptions

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the configured logger.

    Library code imports ``logger`` at module load time, long before
    anyone calls setup_logger(). Until then every call is a no-op.
    """

    def __getattr__(self, name):
        if _current_logger is None:
            def _noop(*args, **kwargs):  # noqa: ARG001
                return contextlib.nullcontext()
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


logger = _LoggerProxy()


# Level name -> OpenTelemetry severity number
LEVELS = {
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}


_INTERNAL_ATTRIBUTE_PREFIXES = (
    'logfire.', 'code.', 'otel.', 'telemetry.', 'service.', 'process.',
)


def level_name(level_num: int) -> str:
    """Map a severity number back to the closest level name."""
    for name in ('fatal', 'error', 'warn', 'info', 'debug', 'trace'):
        if level_num >= LEVELS[name]:
            return name
    return 'trace'


class LevelFilteringExporter(SpanExporter):
    """Forwards only spans at or above a minimum severity."""

    def __init__(self, exporter: SpanExporter, min_level: str):
        self._exporter = exporter
        self._min_severity = LEVELS.get(
            min_level.lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        filtered = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if filtered:
            return self._exporter.export(filtered)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """Base class for log output sinks."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Log level for this sink. If None, inherits from Logger.level. "
            "Valid: trace, debug, info, warn, error, fatal"
        )
    )

    _processor: Any = PrivateAttr(default=None)

    @abstractmethod
    def create_processor(self, log_root: Path, session_name: str):
        """Return a span processor for this sink, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Console output, rendered by logfire itself.

    Writes to stderr by default; stdout belongs to the CLI's results.
    """

    verbose: bool = Field(
        default=False,
        description="Show full span details"
    )
    colors: str = Field(
        default="auto",
        description="Color mode: auto, always, never"
    )
    output: Literal["stdout", "stderr"] = Field(
        default="stderr",
        description="Stream the console sink writes to"
    )

    def create_processor(self, log_root: Path, session_name: str):
        return None

    def options(self) -> ConsoleOptions | Literal[False]:
        """logfire console options, or False when disabled."""
        from logfire import ConsoleOptions

        if not self.enabled:
            return False
        return ConsoleOptions(
            min_log_level=self.level,
            verbose=self.verbose,
            colors=self.colors,
            include_timestamps=True,
            output=getattr(sys, self.output),
        )


class FileSink(Sink):
    """Plain-text log file, one line per span."""

    enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    path: str = Field(
        default="{log_root}/{session_name}.log",
        description="Log file path template"
    )
    format_template: str = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description="Line template; fields: timestamp, level, message"
    )

    _file: Any = PrivateAttr(default=None)

    def format_span(self, span) -> str:
        """Render a span through format_template, appending custom
        attributes as key=value pairs."""
        from datetime import UTC, datetime

        attrs = span.attributes or {}
        line = self.format_template.format(
            timestamp=datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
            level=level_name(attrs.get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            )),
            message=attrs.get('logfire.msg', span.name),
        )

        extras = {
            key: value for key, value in attrs.items()
            if not key.startswith(_INTERNAL_ATTRIBUTE_PREFIXES)
        }
        if extras:
            line += ' │ ' + ' '.join(
                f"{k}={v!r}" for k, v in sorted(extras.items())
            )
        return line + '\n'

    def create_processor(self, log_root: Path, session_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(
            self.path.format(log_root=log_root, session_name=session_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered; stays open for the lifetime of the sink
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file,
            formatter=self.format_span,
        )
        return BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level or 'info')
        )

    def close(self):
        # Processor first so buffered spans reach the file
        super().close()
        if self._file and not self._file.closed:
            self._file.close()


class Logger(BaseConfig):
    """Logger with console and file sinks.

    Closing the logger closes its sinks through the BaseCloseable
    cascade.
    """

    level: str = Field(
        default="info",
        description=(
            "Default log level for all sinks. "
            "Valid: trace, debug, info, warn, error, fatal"
        )
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    send_to_logfire: bool = Field(
        default=False,
        description="Also send telemetry to logfire.dev (needs a token)"
    )

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, session_name: str):
        """Create sink processors and configure logfire."""
        import logfire

        for sink in (self.console, self.file):
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, session_name)

        processors = [
            sink._processor
            for sink in (self.console, self.file)
            if sink.enabled and sink._processor
        ]

        logfire.configure(
            service_name=f"bintest-{session_name}",
            send_to_logfire=self.send_to_logfire,
            console=self.console.options(),
            additional_span_processors=processors or None,
        )

    def trace(self, msg: str, **kwargs):
        import logfire
        logfire.trace(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Context manager that records the enclosed work as a span."""
        import logfire
        return logfire.span(msg, **kwargs)


def is_configured() -> bool:
    return _current_logger is not None


def setup_logger(
    log_root: Path,
    session_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
) -> Logger:
    """Initialize the global logger singleton.

    Called by Settings on first load. Tests call it directly.

    Args:
        log_root: Directory used to expand the file sink path
        session_name: Name used for the service and log file
        level: Default level for sinks that don't set one
        console: Console sink config (or None for defaults)
        file: File sink config (or None for defaults)

    Returns:
        Logger: The initialized global logger instance
    """
    global _current_logger

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
    )
    _current_logger.setup(log_root, session_name)
    return _current_logger
