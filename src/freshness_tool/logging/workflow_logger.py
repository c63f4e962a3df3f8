#!/usr/bin/env python3
"""
Centralized Logging Utility for the Freshness Tool

This module provides organized logging functionality with groupings for the
different stages of the criteria freshness pipeline: remote listing, commit
queries, date index construction, local index loading, reconciliation and
report output.
"""

import json
import os
import re
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from tqdm import tqdm


class LogLevel(Enum):
    """Log level enumeration"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogGroup(Enum):
    """Log group enumeration for workflow stages"""
    INIT = "INIT"
    LISTING = "LISTING"
    COMMIT_QUERY = "COMMIT_QUERY"
    DATE_INDEX = "DATE_INDEX"
    LOCAL_INDEX = "LOCAL_INDEX"
    RECONCILE = "RECONCILE"
    REPORT = "REPORT"
    CACHE_MANAGEMENT = "CACHE_MANAGEMENT"


# Accepted aliases when a group is passed as a plain string
_GROUP_ALIASES = {
    "init": LogGroup.INIT,
    "initialization": LogGroup.INIT,
    "listing": LogGroup.LISTING,
    "remote_listing": LogGroup.LISTING,
    "commit_query": LogGroup.COMMIT_QUERY,
    "commit_queries": LogGroup.COMMIT_QUERY,
    "date_index": LogGroup.DATE_INDEX,
    "local_index": LogGroup.LOCAL_INDEX,
    "reconcile": LogGroup.RECONCILE,
    "reconciliation": LogGroup.RECONCILE,
    "report": LogGroup.REPORT,
    "reporting": LogGroup.REPORT,
    "cache_management": LogGroup.CACHE_MANAGEMENT,
}

_LEVEL_HIERARCHY = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3
}


class WorkflowLogger:
    """Centralized logger for the freshness tool workflow"""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize the logger with configuration"""
        self.config = self._load_config(config_path)
        self.logging_config = self.config.get('logging', {})
        self.enabled = self.logging_config.get('enabled', True)
        self.level = LogLevel(self.logging_config.get('level', 'INFO'))
        self.format_string = self.logging_config.get('format', '[{timestamp}] [{level}] {message}')
        self.groups = self.logging_config.get('groups', {})

        # File logging setup
        self.log_file = None
        self.current_log_path = None
        self.log_directory = None
        self.colors = {
            'blue': '\033[94m',
            'green': '\033[92m',
            'yellow': '\033[93m',
            'cyan': '\033[96m',
            'magenta': '\033[95m',
            'white': '\033[97m',
            'red': '\033[91m',
            'reset': '\033[0m'
        }

        # Avoid colors in non-interactive terminals
        self.use_colors = sys.stdout.isatty() and os.name != 'nt'

    def _load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from config.json"""
        if config_path is None:
            config_path = os.path.join(os.path.dirname(__file__), '..', 'config.json')

        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            print(f"Warning: Could not load config file {config_path}: {e}")
            return {}

    def set_level(self, level: str):
        """Override the configured minimum level (e.g. from a --verbose flag)"""
        self.level = LogLevel(level.upper())

    def set_run_logs_directory(self, run_logs_path: str):
        """Update the logs directory to use run-specific path"""
        self.log_directory = run_logs_path

    def _resolve_group(self, group) -> LogGroup:
        if isinstance(group, LogGroup):
            return group
        key = str(group).lower()
        if key in _GROUP_ALIASES:
            return _GROUP_ALIASES[key]
        try:
            return LogGroup(str(group).upper())
        except ValueError:
            return LogGroup.INIT

    def _group_config(self, group: LogGroup) -> Dict[str, Any]:
        return self.groups.get(group.value, {})

    def _should_log(self, level: LogLevel, group: LogGroup) -> bool:
        """Determine if we should log based on level and group settings"""
        if not self.enabled:
            return False
        if not self._group_config(group).get('enabled', True):
            return False
        return _LEVEL_HIERARCHY[level] >= _LEVEL_HIERARCHY[self.level]

    def _get_timestamp(self) -> str:
        """Get formatted timestamp"""
        return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')

    def _colorize(self, group: LogGroup, text: str) -> str:
        if not self.use_colors:
            return text
        color = self.colors.get(self._group_config(group).get('color', 'white'), '')
        return f"{color}{text}{self.colors['reset']}"

    def _format_message(self, level: LogLevel, group: LogGroup, message: str) -> str:
        """Format the log message"""
        formatted = self.format_string.format(
            timestamp=self._get_timestamp(),
            level=level.value,
            message=message
        )
        # Only colorize stage banners and errors
        if "===" in message:
            return self._colorize(group, formatted)
        if level == LogLevel.ERROR and self.use_colors:
            return f"{self.colors['red']}{formatted}{self.colors['reset']}"
        return formatted

    def _log_banner(self, group, message: str):
        """Log a stage banner without log level prefix"""
        if not self.enabled:
            return
        group_enum = self._resolve_group(group)
        if not self._group_config(group_enum).get('enabled', True):
            return
        formatted = self._colorize(group_enum, f"[{self._get_timestamp()}] {message}")
        self._print_message(formatted)

    def log(self, level: LogLevel, group, message: str):
        """Log a message with specified level and group"""
        group_enum = self._resolve_group(group)
        if self._should_log(level, group_enum):
            self._print_message(self._format_message(level, group_enum, message))

    def debug(self, message: str, group: str = "initialization"):
        """Log a debug message"""
        self.log(LogLevel.DEBUG, group, message)

    def info(self, message: str, group: str = "initialization"):
        """Log an info message"""
        self.log(LogLevel.INFO, group, message)

    def warning(self, message: str, group: str = "initialization"):
        """Log a warning message"""
        self.log(LogLevel.WARNING, group, message)

    def error(self, message: str, group: str = "initialization"):
        """Log an error message"""
        self.log(LogLevel.ERROR, group, message)

    def stage_start(self, stage_name: str, details: str = "", group: str = "initialization"):
        """Log the start of a major workflow stage"""
        extra = f" - {details}" if details else ""
        self._log_banner(group, f"=== Starting {stage_name}{extra} ===")

    def stage_end(self, stage_name: str, details: str = "", group: str = "initialization"):
        """Log the end of a major workflow stage"""
        extra = f" - {details}" if details else ""
        self._log_banner(group, f"=== Completed {stage_name}{extra} ===")

    def stage_progress(self, current: int, total: int, item: str = "", group: str = "initialization"):
        """Log progress within a stage"""
        progress_pct = (current / total * 100) if total > 0 else 0
        item_info = f" ({item})" if item else ""
        self.info(f"Progress: {current}/{total} ({progress_pct:.1f}%){item_info}", group=group)

    def api_call(self, endpoint: str, params: Dict[str, Any] = None, group: str = "commit_queries"):
        """Log an API call"""
        params_str = f" with params: {params}" if params else ""
        self.debug(f"API Call: {endpoint}{params_str}", group=group)

    def api_response(self, endpoint: str, status: str, count: int = None, group: str = "commit_queries"):
        """Log an API response"""
        count_str = f" ({count} results)" if count is not None else ""
        self.debug(f"API Response: {endpoint} - {status}{count_str}", group=group)

    def data_summary(self, operation: str, group: str = "date_index", **kwargs):
        """Log a data operation summary"""
        details = ", ".join([f"{k}={v}" for k, v in kwargs.items()])
        self.info(f"[{operation}]: {details}", group=group)

    def file_operation(self, operation: str, filepath: str, details: str = "", group: str = "reporting"):
        """Log a file operation"""
        extra = f" - {details}" if details else ""
        self.info(f"File {operation}: {filepath}{extra}", group=group)

    def _print_message(self, message: str):
        """Print a message through tqdm.write so active progress bars are not broken"""
        try:
            tqdm.write(message)
        except UnicodeEncodeError:
            safe_message = message.encode('ascii', errors='replace').decode('ascii')
            tqdm.write(safe_message)

        if self.log_file:
            try:
                self.log_file.write(self._strip_ansi_codes(message) + '\n')
                self.log_file.flush()
            except OSError as e:
                print(f"Warning: Failed to write to log file: {e}")

    def _strip_ansi_codes(self, text: str) -> str:
        """Remove ANSI color codes from text for clean file output"""
        ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')
        return ansi_escape.sub('', text)

    def start_file_logging(self, run_parameters: str):
        """Start logging to a file with date and parameter-based filename

        set_run_logs_directory() must be called first. If file logging is already
        active for the same file, this is a no-op.
        """
        if not self.enabled:
            return

        if not self.log_directory:
            print("Warning: Cannot start file logging - no log directory set. Call set_run_logs_directory() first.")
            return

        try:
            os.makedirs(self.log_directory, exist_ok=True)

            date_str = datetime.now(timezone.utc).strftime("%Y.%m.%d")
            clean_params = re.sub(r'[<>:"/\\|?*]', '_', run_parameters).replace(' ', '_')
            log_path = os.path.join(self.log_directory, f"{date_str}_{clean_params}.log")

            if self.log_file and self.current_log_path == log_path:
                return

            if self.log_file:
                self.stop_file_logging()

            self.current_log_path = log_path
            if os.path.exists(log_path):
                self.log_file = open(log_path, 'a', encoding='utf-8')
                self.log_file.write(f"\n# Logging resumed: {self._get_timestamp()}\n")
                self.log_file.write(f"# Parameters: {run_parameters}\n\n")
            else:
                self.log_file = open(log_path, 'w', encoding='utf-8')
            self.log_file.flush()

            print(f"[{self._get_timestamp()}] [INFO] Logging to file: {log_path}")

        except OSError as e:
            print(f"Warning: Failed to start file logging: {e}")
            self.log_file = None

    def stop_file_logging(self):
        """Stop file logging and close the log file"""
        if self.log_file:
            try:
                self.log_file.write("\n# " + "=" * 50 + "\n")
                self.log_file.write(f"# Completed: {self._get_timestamp()}\n")
                self.log_file.write("# End of log\n")
                self.log_file.close()
            except OSError as e:
                print(f"Warning: Failed to close log file properly: {e}")
            finally:
                self.log_file = None
                self.current_log_path = None


# Global logger instance
_logger_instance = None


def get_logger() -> WorkflowLogger:
    """Get the global logger instance"""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = WorkflowLogger()
    return _logger_instance


def reinitialize_logger(config_path: Optional[str] = None):
    """Reinitialize the global logger with new config"""
    global _logger_instance
    _logger_instance = WorkflowLogger(config_path)


# Stage management convenience functions
def start_listing(details: str = ""):
    get_logger().stage_start("Remote Listing", details, group="listing")


def end_listing(details: str = ""):
    get_logger().stage_end("Remote Listing", details, group="listing")


def start_date_index(details: str = ""):
    get_logger().stage_start("Date Index Build", details, group="date_index")


def end_date_index(details: str = ""):
    get_logger().stage_end("Date Index Build", details, group="date_index")


def start_local_index(details: str = ""):
    get_logger().stage_start("Local Index Load", details, group="local_index")


def end_local_index(details: str = ""):
    get_logger().stage_end("Local Index Load", details, group="local_index")


def start_reconciliation(details: str = ""):
    get_logger().stage_start("Staleness Reconciliation", details, group="reconcile")


def end_reconciliation(details: str = ""):
    get_logger().stage_end("Staleness Reconciliation", details, group="reconcile")
