"""Input validation utilities for SiteWatch startup configuration"""
import os
import stat
import logging
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger("SiteWatch.Validation")


def validate_url(url: str) -> bool:
    """Validate that the target is an absolute http(s) URL"""
    if not url or not url.strip():
        logger.warning("Target URL is empty")
        return False

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        logger.warning(f"Unsupported URL scheme '{parsed.scheme}': {url}")
        return False

    if not parsed.netloc:
        logger.warning(f"URL has no host: {url}")
        return False

    return True


def check_executable(path: str) -> Optional[str]:
    """
    Check that the remediation binary exists and carries an exec bit.

    Returns:
        None if usable, otherwise a human readable reason
    """
    if not path:
        return "ELF binary path is required"

    try:
        info = os.stat(path)
    except (OSError, ValueError) as e:
        return f"Cannot access ELF binary {path}: {e}"

    if not stat.S_ISREG(info.st_mode):
        return f"ELF binary {path} is not a regular file"

    if info.st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH) == 0:
        return f"ELF binary {path} is not executable"

    return None
