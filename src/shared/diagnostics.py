"""
Diagnostic utilities.

This module reports process memory, thread state and disk-cache usage.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import psutil

logger = logging.getLogger(__name__)


def get_memory_info() -> dict[str, Any]:
    """Get comprehensive memory usage information."""
    try:
        process = psutil.Process()
        memory_info = process.memory_info()
        system_memory = psutil.virtual_memory()

        return {
            'process_rss_mb': round(memory_info.rss / 1024 / 1024, 2),
            'process_vms_mb': round(memory_info.vms / 1024 / 1024, 2),
            'system_total_mb': round(system_memory.total / 1024 / 1024, 2),
            'system_available_mb': round(
                system_memory.available / 1024 / 1024,
                2,
            ),
            'system_used_percent': system_memory.percent,
        }
    except psutil.Error as e:
        return {'error': f'Failed to get memory info: {e}'}


def get_thread_info() -> dict[str, Any]:
    """Get information about active threads."""
    info: dict[str, Any] = {
        'active_count': threading.active_count(),
        'thread_names': [t.name for t in threading.enumerate()],
    }
    try:
        info['system_threads'] = psutil.Process().num_threads()
    except psutil.Error as e:
        logger.debug('Failed to get system thread count: %s', e)
    return info


def get_disk_cache_info(cache_dir: str | Path) -> dict[str, Any]:
    """Count tile files and their total size under the disk cache root."""
    root = Path(cache_dir)
    if not root.exists():
        return {'cache_dir': str(root), 'files': 0, 'size_mb': 0.0}

    files = 0
    size = 0
    for path in root.rglob('*'):
        if path.is_file():
            files += 1
            try:
                size += path.stat().st_size
            except OSError as e:
                logger.debug('Failed to stat %s: %s', path, e)
    return {
        'cache_dir': str(root),
        'files': files,
        'size_mb': round(size / 1024 / 1024, 2),
    }


def log_comprehensive_diagnostics(
    operation: str = 'general',
    cache_dir: str | Path | None = None,
    level: int = logging.INFO,
) -> None:
    """Log comprehensive diagnostic information."""
    logger.log(level, '=== DIAGNOSTIC INFO: %s ===', operation.upper())

    memory_info = get_memory_info()
    logger.log(
        level,
        'Memory - RSS: %sMB, VMS: %sMB, System Available: %sMB (%s%% used)',
        memory_info.get('process_rss_mb', 'N/A'),
        memory_info.get('process_vms_mb', 'N/A'),
        memory_info.get('system_available_mb', 'N/A'),
        memory_info.get('system_used_percent', 'N/A'),
    )

    thread_info = get_thread_info()
    logger.log(
        level,
        'Threads - Active: %s, System: %s (%s)',
        thread_info.get('active_count', 'N/A'),
        thread_info.get('system_threads', 'N/A'),
        ', '.join(thread_info.get('thread_names', [])),
    )

    if cache_dir is not None:
        cache_info = get_disk_cache_info(cache_dir)
        logger.log(
            level,
            'Disk cache - %s: %s files, %sMB',
            cache_info['cache_dir'],
            cache_info['files'],
            cache_info['size_mb'],
        )

    logger.log(level, '=== END DIAGNOSTIC INFO: %s ===', operation.upper())


def log_memory_usage(context: str = '') -> None:
    """Quick memory usage logging."""
    memory_info = get_memory_info()
    context_label = f' ({context})' if context else ''
    logger.info(
        'Memory usage%s: RSS=%sMB, Available=%sMB',
        context_label,
        memory_info.get('process_rss_mb', 'N/A'),
        memory_info.get('system_available_mb', 'N/A'),
    )


def log_thread_status(context: str = '') -> None:
    """Quick thread status logging."""
    thread_info = get_thread_info()
    context_label = f' ({context})' if context else ''
    logger.info(
        'Thread status%s: Active=%s, System=%s',
        context_label,
        thread_info.get('active_count', 'N/A'),
        thread_info.get('system_threads', 'N/A'),
    )
