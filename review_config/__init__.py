"""
review_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``WorkflowConfiguration``:
    role group names, field limits, the business calendar and the standard
    turnaround.

Architecture position:
    Configuration -- YAML-driven, validated at load time.  This package
    sits above ``review_kernel`` and below ``review_services``.  The kernel
    and the engines MUST NEVER import from ``review_config``; services
    hand the parsed values to them as parameters.

Invariants enforced:
    - Deterministic loading: the same YAML always produces the same
      configuration and checksum.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ValueError`` / ``KeyError`` -- schema or structural validation
      failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``REVIEW_CONFIG_TRACE`` log entry containing the config_id, version
    and checksum, tying each transition to the configuration that
    governed it.
"""

from __future__ import annotations

from pathlib import Path

from review_config.loader import compute_checksum, load_configuration
from review_config.schema import CalendarDef, WorkflowConfiguration
from review_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> WorkflowConfiguration:
    """The public configuration entrypoint.

    Args:
        name: Configuration set name (a subdirectory holding ``root.yaml``).
        config_dir: Override path to the configuration sets directory.
            Defaults to review_config/sets/.

    Raises:
        FileNotFoundError: If the configuration set does not exist.
        ValueError: If configuration validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    root_file = sets_dir / name / "root.yaml"
    if not root_file.exists():
        raise FileNotFoundError(f"No configuration set {name!r} in {sets_dir}")

    config = load_configuration(root_file)

    _logger.info(
        "REVIEW_CONFIG_TRACE",
        extra={
            "trace_type": "REVIEW_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "timezone": config.calendar.timezone,
            "holiday_count": len(config.calendar.holidays),
        },
    )
    return config


__all__ = [
    "CalendarDef",
    "WorkflowConfiguration",
    "compute_checksum",
    "get_active_config",
]
