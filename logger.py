"""
Logging System for ShotLog.
Provides structured logging with categories for calibration, marking
and group analysis, rotating log files and an audit trail of statistics runs.
"""
import logging
import logging.handlers
import time
import json
import traceback
from pathlib import Path
from typing import Optional, Dict, Any, Union
from enum import Enum, auto
from contextlib import contextmanager
from datetime import datetime
import uuid
class LogLevel(Enum):
    """Log levels including a TRACE level below DEBUG."""
    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
class LogCategory(Enum):
    """Categories used to tag ShotLog records."""
    SYSTEM = auto()
    CALIBRATION = auto()
    MARKING = auto()
    ANALYSIS = auto()
    DATA = auto()
    USER_ACTION = auto()
class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured fields as a JSON tail."""
    def __init__(self, include_json=True):
        super().__init__()
        self.include_json = include_json
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        basic_line = f"[{timestamp}] {record.levelname:8} {record.name}: {record.getMessage()}"
        structured_data = {}
        for key, value in record.__dict__.items():
            if key.startswith('field_') or key in ['category', 'session_id']:
                structured_data[key] = value
        if record.exc_info:
            structured_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }
        structured_data['location'] = {
            'filename': record.filename,
            'line': record.lineno,
            'function': record.funcName
        }
        if structured_data and self.include_json:
            json_data = json.dumps(structured_data, default=str, ensure_ascii=False)
            return f"{basic_line} | {json_data}"
        return basic_line
class ShotLogLogger:
    """Application logger for ShotLog."""
    def __init__(self, name: str = "shotlog", log_dir: Optional[Path] = None):
        self.name = name
        self.session_id = str(uuid.uuid4())[:8]
        if log_dir is None:
            log_dir = Path.home() / "ShotLog" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_loggers()
        self.debug("ShotLog logging system initialized",
                   session_id=self.session_id,
                   log_dir=str(self.log_dir))
    def _setup_loggers(self):
        """Setup main logger and handlers."""
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(logging.DEBUG)
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(StructuredFormatter(include_json=False))
        self.logger.addHandler(console_handler)
        self.console_handler = console_handler
        log_file = self.log_dir / f"{self.name}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10*1024*1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter(include_json=True))
        self.logger.addHandler(file_handler)
        # Errors get their own file so they survive rotation of the main log
        error_log_file = self.log_dir / f"{self.name}_errors.log"
        error_handler = logging.handlers.RotatingFileHandler(
            error_log_file, maxBytes=5*1024*1024, backupCount=5, encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(StructuredFormatter(include_json=True))
        self.logger.addHandler(error_handler)
    def _log(self, level: int, message: str, category: Optional[Union[LogCategory, str]] = None,
             exception: Optional[Exception] = None, **kwargs):
        """Internal logging method."""
        if isinstance(category, LogCategory):
            category_name = category.name
        elif category:
            category_name = str(category).upper()
        else:
            category_name = 'GENERAL'
        extra = {
            'session_id': self.session_id,
            'category': category_name
        }
        for key, value in kwargs.items():
            if not key.startswith('_'):
                extra[f'field_{key}'] = value
        if exception:
            self.logger.log(level, message, exc_info=(type(exception), exception, exception.__traceback__), extra=extra)
        else:
            self.logger.log(level, message, extra=extra)
    def trace(self, message: str, category: Optional[LogCategory] = None, **kwargs):
        """Log trace message (most detailed debugging info)."""
        self._log(LogLevel.TRACE.value, message, category, **kwargs)
    def debug(self, message: str, category: Optional[LogCategory] = None, **kwargs):
        """Log debug message."""
        self._log(LogLevel.DEBUG.value, message, category, **kwargs)
    def info(self, message: str, category: Optional[LogCategory] = None, **kwargs):
        """Log info message."""
        self._log(LogLevel.INFO.value, message, category, **kwargs)
    def warning(self, message: str, category: Optional[LogCategory] = None, **kwargs):
        """Log warning message."""
        self._log(LogLevel.WARNING.value, message, category, **kwargs)
    def error(self, message: str, exception: Optional[Exception] = None,
              category: Optional[LogCategory] = None, **kwargs):
        """Log error message."""
        self._log(LogLevel.ERROR.value, message, category, exception, **kwargs)
    def critical(self, message: str, exception: Optional[Exception] = None,
                 category: Optional[LogCategory] = None, **kwargs):
        """Log critical message."""
        self._log(LogLevel.CRITICAL.value, message, category, exception, **kwargs)
    def log_user_action(self, action: str, details: Optional[Dict[str, Any]] = None):
        """Log user actions taken in the marking window or CLI."""
        log_data = {
            'action': action,
            'timestamp': time.time()
        }
        if details:
            log_data.update(details)
        self._log(LogLevel.INFO.value, f"USER ACTION: {action}",
                  LogCategory.USER_ACTION, **log_data)
    def log_calibration(self, accepted: bool, pixel_distance: float, real_distance: float,
                        units: str, pixels_per_unit: Optional[float] = None):
        """Log a calibration attempt and whether it was accepted."""
        level = LogLevel.INFO.value if accepted else LogLevel.WARNING.value
        status = "accepted" if accepted else "rejected"
        self._log(level, f"CALIBRATION: {status}", LogCategory.CALIBRATION,
                  pixel_distance=pixel_distance, real_distance=real_distance,
                  units=units, pixels_per_unit=pixels_per_unit)
    def log_analysis_calculation(self, calculation_type: str, inputs: Dict[str, Any],
                                 results: Dict[str, Any]):
        """Log statistics runs for audit trail."""
        self._log(LogLevel.INFO.value, f"ANALYSIS: {calculation_type}",
                  LogCategory.ANALYSIS, inputs=inputs, results=results)
    @contextmanager
    def timer(self, operation: str, log_result: bool = True):
        """Context manager for timing operations."""
        start_time = time.time()
        operation_id = str(uuid.uuid4())[:8]
        self.debug(f"Starting operation: {operation}",
                   category=LogCategory.SYSTEM, operation_id=operation_id)
        try:
            yield operation_id
        finally:
            duration = time.time() - start_time
            if log_result:
                self.info(f"Completed operation: {operation} in {duration:.3f}s",
                          category=LogCategory.SYSTEM, operation_id=operation_id,
                          duration=duration)
    def get_session_id(self) -> str:
        """Get the current logging session ID."""
        return self.session_id
    def set_log_level(self, level: Union[str, int, LogLevel]):
        """Set the console logging level."""
        if isinstance(level, LogLevel):
            level = level.value
        elif isinstance(level, str):
            level = getattr(logging, level.upper())
        self.console_handler.setLevel(level)
        self.info(f"Console log level set to: {logging.getLevelName(level)}")
    def cleanup_old_logs(self, days_to_keep: int = 30) -> int:
        """Remove log files older than ``days_to_keep`` days."""
        cutoff_time = time.time() - (days_to_keep * 24 * 3600)
        removed_count = 0
        try:
            for log_file in self.log_dir.glob("*.log.*"):
                if log_file.stat().st_mtime < cutoff_time:
                    log_file.unlink()
                    removed_count += 1
        except OSError as e:
            self.error("Failed to cleanup old logs", exception=e)
            return removed_count
        self.info(f"Cleaned up {removed_count} old log files",
                  category=LogCategory.SYSTEM,
                  removed_count=removed_count,
                  days_to_keep=days_to_keep)
        return removed_count
    def flush(self):
        """Flush every attached handler."""
        for handler in self.logger.handlers:
            handler.flush()
# Global logger instance
_global_logger: Optional[ShotLogLogger] = None
def get_logger() -> ShotLogLogger:
    """Get the global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = ShotLogLogger()
    return _global_logger
def setup_logger(name: str = "shotlog", log_dir: Optional[Path] = None) -> ShotLogLogger:
    """Set up and return the global logger."""
    global _global_logger
    _global_logger = ShotLogLogger(name, log_dir)
    return _global_logger
def timer(operation: str, log_result: bool = True):
    """Timer context manager using global logger."""
    return get_logger().timer(operation, log_result)
class LoggableMixin:
    """Mixin class to add logging capabilities to other classes."""
    @property
    def _logger(self) -> ShotLogLogger:
        return get_logger()
    @property
    def _module_name(self) -> str:
        return self.__class__.__name__
    def log_debug(self, message: str, **kwargs):
        """Log debug message."""
        self._logger.debug(f"[{self._module_name}] {message}", **kwargs)
    def log_info(self, message: str, **kwargs):
        """Log info message."""
        self._logger.info(f"[{self._module_name}] {message}", **kwargs)
    def log_warning(self, message: str, **kwargs):
        """Log warning message."""
        self._logger.warning(f"[{self._module_name}] {message}", **kwargs)
    def log_error(self, message: str, exception: Optional[Exception] = None, **kwargs):
        """Log error message."""
        self._logger.error(f"[{self._module_name}] {message}", exception=exception, **kwargs)
    def log_user_action(self, action: str, details: Optional[Dict[str, Any]] = None):
        """Log user action."""
        action_details = {'module': self._module_name}
        if details:
            action_details.update(details)
        self._logger.log_user_action(action, action_details)
