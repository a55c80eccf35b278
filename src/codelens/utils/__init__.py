"""codelens utility modules.

- logging: Human/verbose/JSON log output for the CLI
- preflight: Provider and GitHub availability checks
"""

from codelens.utils.logging import configure_from_cli, get_logger, setup_logging
from codelens.utils.preflight import PreflightChecker, PreflightResult

__all__ = [
    "configure_from_cli",
    "get_logger",
    "setup_logging",
    "PreflightChecker",
    "PreflightResult",
]
