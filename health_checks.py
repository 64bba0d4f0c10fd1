"""
Health Check & Monitoring
Reports process metrics, uptime and store reachability for SolarOps
"""
import os
import time
import psutil
from datetime import datetime
from typing import Dict, Any
import logging

from exceptions import StoreError

logger = logging.getLogger(__name__)

# Track application start time
START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic system metrics

    Returns:
        Dictionary of system metrics (empty if they cannot be read)
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': process.memory_info().rss / 1024 / 1024,
            'memory_percent': process.memory_percent(),
            'threads': process.num_threads(),
            'open_files': len(process.open_files()),
        }
    except (psutil.Error, OSError) as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    """
    Get application uptime

    Returns:
        Dictionary with uptime information
    """
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_database(store) -> Dict[str, Any]:
    """
    Check that the store answers a trivial query

    Args:
        store: database.store.Store

    Returns:
        Dictionary with 'healthy', the backend name and any error
    """
    status = {
        'backend': store.engine.url.get_backend_name(),
        'healthy': False,
        'error': None,
    }
    started = time.time()
    try:
        status['healthy'] = store.check_connection()
    except StoreError as e:
        logger.error(f"Database health check failed: {e}")
        status['error'] = str(e)
    status['response_ms'] = round((time.time() - started) * 1000, 2)
    return status


def check_log_directory(config) -> Dict[str, Any]:
    """
    Check that the log directory exists and is writable when file logging is on

    Args:
        config: Configuration class (see config.py)

    Returns:
        Dictionary of filesystem checks
    """
    if not getattr(config, 'LOG_TO_FILE', False):
        return {'enabled': False, 'healthy': True}

    dir_path = os.path.join(os.getcwd(), config.LOG_DIR)
    exists = os.path.exists(dir_path)
    writable = os.access(dir_path, os.W_OK) if exists else False

    return {
        'enabled': True,
        'exists': exists,
        'writable': writable,
        'healthy': exists and writable
    }


def get_health_report(store, config=None) -> Dict[str, Any]:
    """
    Combined health report

    Args:
        store: database.store.Store
        config: Configuration class; the log directory is checked when given

    Returns:
        Dictionary with overall status, component checks, uptime and metrics
    """
    checks = {'database': check_database(store)}
    if config is not None:
        checks['log_directory'] = check_log_directory(config)

    healthy = all(check['healthy'] for check in checks.values())

    return {
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': datetime.now().isoformat(),
        'service': 'solarops',
        'checks': checks,
        'uptime': get_uptime(),
        'system': get_system_metrics()
    }
