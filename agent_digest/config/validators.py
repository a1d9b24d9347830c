"""Additional validation utilities for configuration."""

import warnings
from pathlib import Path
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    # Large worker pools can overload the search service
    dispatch = config_dict.get("dispatch", {})
    if isinstance(dispatch, dict):
        concurrency = dispatch.get("concurrency", 4)
        if isinstance(concurrency, int) and concurrency > 16:
            warning_messages.append(
                f"High dispatch.concurrency ({concurrency}) may overload the search service"
            )

    # Without retries a single transient failure drops the subscriber's digest
    for section in ("search", "email"):
        settings = config_dict.get(section, {})
        if isinstance(settings, dict) and settings.get("max_retries") == 0:
            warning_messages.append(
                f"{section}.max_retries is 0; transient failures will skip subscribers for the day"
            )

    # Inline images are skipped when the assets directory is missing
    assets_dir = config_dict.get("mail_assets_dir")
    if isinstance(assets_dir, str) and not Path(assets_dir).is_dir():
        warning_messages.append(
            f"mail_assets_dir '{assets_dir}' does not exist; digests will be sent without images"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
