"""
Listening Socket

The persistent endpoint handed to every compositor incarnation.
"""

from .core import ResourceHandle
from .wayland import WaylandSocket

__all__ = [
    'ResourceHandle',
    'WaylandSocket',
]
