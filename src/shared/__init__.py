"""Shared utilities and helpers."""
from shared.diagnostics import (
    log_comprehensive_diagnostics,
    log_memory_usage,
    log_thread_status,
)
from shared.errors import ConfigurationError, MapiusError

__all__ = [
    'ConfigurationError',
    'MapiusError',
    'log_comprehensive_diagnostics',
    'log_memory_usage',
    'log_thread_status',
]
