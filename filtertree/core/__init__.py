"""FilterTree Core - Shared utilities and infrastructure.

Import specific functions from submodules:
    from filtertree.core.config import ConfigManager
    from filtertree.core.logging import Logger
    from filtertree.core import constants
    from filtertree.core import paths
"""

from filtertree.core import config, constants, logging, paths

__all__ = [
    "config",
    "constants",
    "logging",
    "paths",
]
