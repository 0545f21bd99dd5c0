"""Sequential URI to PDF conversion over a recoverable headless browser session."""

from .converter import Uri2Pdf
from .errors import (
    ConversionError,
    ConversionTimeout,
    ErrorKind,
    NavigationError,
    PageCloseError,
    SessionCreationError,
    SessionUnavailableError,
)
from .events import CANCEL, Event, EventKind, HandlerTable, Listener
from .models import ConverterConfig, EngineOptions, PageOption
from .queue import Job

__all__ = [
    "Uri2Pdf",
    "CANCEL",
    "Event",
    "EventKind",
    "HandlerTable",
    "Listener",
    "ConverterConfig",
    "EngineOptions",
    "PageOption",
    "Job",
    "ConversionError",
    "ConversionTimeout",
    "ErrorKind",
    "NavigationError",
    "PageCloseError",
    "SessionCreationError",
    "SessionUnavailableError",
]
