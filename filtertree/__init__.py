"""FilterTree - browse and edit rclone filter files against a directory tree."""

from filtertree.core.constants import FILTERTREE_VERSION

__version__ = FILTERTREE_VERSION
