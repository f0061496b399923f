"""
Resource Handle Core

Defines the abstract ResourceHandle interface for the listening endpoint that
outlives every compositor incarnation. The supervisor never creates or
interprets the transport itself; it only reads the descriptor and display
name, and destroys the handle exactly once.
"""

from abc import ABC, abstractmethod

from result import Result


class ResourceHandle(ABC):
    """
    Abstract base class for the shared listening endpoint.

    Implementations own the underlying transport. The supervisor only uses
    the accessors below.
    """

    @classmethod
    @abstractmethod
    def acquire(cls) -> Result['ResourceHandle', str]:
        """
        Create the endpoint.

        :returns: Ok(handle) on success, Err(reason) otherwise
        """
        pass

    @abstractmethod
    def fileno(self) -> int:
        """
        Numeric descriptor of the listening endpoint.

        :returns: An inheritable file descriptor
        """
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Name clients use to find the endpoint (e.g. ``wayland-1``)."""
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Release the endpoint. Calling it again has no effect."""
        pass
