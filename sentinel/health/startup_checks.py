"""Startup sanity checks and diagnostic output."""

import os
import shutil
import sys
import importlib.metadata
from pathlib import Path
from typing import Iterable, Tuple

from .status_types import ServiceSpec

REQUIRED_PACKAGES: Tuple[str, ...] = ('aiohttp', 'PyYAML')


def log_separator(message: str = ""):
    """Print a separator line for readability."""
    if message:
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print('=' * 60)
    else:
        print('=' * 60)


def check_python_version() -> bool:
    """Log Python interpreter version."""
    version_info = sys.version_info
    print(f"✓ Python version: {version_info.major}.{version_info.minor}.{version_info.micro}")
    print(f"  Executable: {sys.executable}")
    return version_info >= (3, 10)


def check_package_versions(packages: Iterable[str] = REQUIRED_PACKAGES) -> bool:
    """
    Log installed versions of runtime dependencies.

    Returns:
        True if every package is installed
    """
    all_satisfied = True
    print("Installed package versions:")
    for package_name in packages:
        try:
            version = importlib.metadata.version(package_name)
            print(f"  ✓ {package_name}: {version}")
        except importlib.metadata.PackageNotFoundError:
            print(f"  ✗ {package_name}: NOT INSTALLED")
            all_satisfied = False
    return all_satisfied


def check_log_directory(log_dir: str) -> bool:
    """
    Ensure the log directory exists and is writable.

    Args:
        log_dir: Directory for rotating log files

    Returns:
        True if the directory is usable
    """
    path = Path(log_dir).resolve()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"✗ Cannot create log directory {path}: {e}")
        return False

    if not os.access(path, os.W_OK):
        print(f"✗ Log directory is not writable: {path}")
        return False

    print(f"✓ Log directory: {path}")
    return True


def check_supervisor_binary(pm2_bin: str) -> bool:
    """
    Check that the pm2 executable resolves.

    A missing binary is not fatal: every probe cycle will simply report
    nothing online until pm2 becomes available.
    """
    resolved = shutil.which(pm2_bin)
    if resolved:
        print(f"✓ pm2 executable: {resolved}")
        return True

    print(f"⚠ pm2 executable not found: {pm2_bin}")
    print(f"  All services will report unhealthy until pm2 is on PATH (or PM2_BIN is set)")
    return False


def log_services(services: Iterable[ServiceSpec]):
    """Print the monitored service list."""
    services = list(services)
    print(f"Monitoring {len(services)} service(s):")
    for service in services:
        print(f"  - {service.name}: pm2 '{service.pm2_name}', tcp {service.host}:{service.port}")


def run_startup_checks(config) -> bool:
    """
    Run all startup sanity checks.

    Args:
        config: Loaded Config instance

    Returns:
        True if all critical checks pass, False otherwise
    """
    log_separator("STARTUP SANITY CHECKS")

    critical_failure = False

    if not check_python_version():
        print("✗ Python 3.10 or newer is required")
        critical_failure = True

    if not check_package_versions():
        print("⚠ WARNING: Some packages are missing, but continuing...")

    if not check_log_directory(config.logging_config.get('log_dir', 'logs')):
        critical_failure = True

    check_supervisor_binary(config.supervisor['pm2_bin'])
    log_services(config.services)

    log_separator()
    if critical_failure:
        print("\n✗ CRITICAL FAILURES DETECTED - Startup checks failed!\n")
        return False

    print("\n✓ All critical startup checks passed!\n")
    return True
