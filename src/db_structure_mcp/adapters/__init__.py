"""MySQL/MariaDB dictionary and session-variable access."""

from .base import BaseAdapter
from .mysql import MySQLAdapter

__all__ = ["BaseAdapter", "MySQLAdapter"]
