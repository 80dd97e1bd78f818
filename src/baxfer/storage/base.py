"""Abstract base class for storage backends."""

from __future__ import annotations

import abc
from typing import IO, Any

from baxfer.core.models import FileMetadata


class BaseStorage(abc.ABC):
    """The uniform capability set every storage provider implements.

    Adapters translate backend-specific failures into
    :mod:`baxfer.core.exceptions` kinds; nothing above this layer ever sees a
    raw SDK error.
    """

    #: Provider name used for logging and error hints.
    provider: str = ""

    @abc.abstractmethod
    def upload(self, key: str, reader: IO[bytes], size: int) -> None:
        """Store the bytes produced by *reader* under *key*.

        Args:
            key: Destination key, forward-slash delimited.
            reader: Binary stream; read until EOF.
            size: Expected byte count, or ``UNKNOWN_SIZE`` (-1) when the stream
                is being produced on the fly.
        """

    @abc.abstractmethod
    def download(self, key: str, writer: IO[bytes]) -> None:
        """Stream the object stored under *key* into *writer*.

        Raises:
            NotFoundError: If the key does not exist.
        """

    @abc.abstractmethod
    def list(self, prefix: str = "") -> list[str]:
        """Return every key under *prefix*, following pagination to the end."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Delete the object stored under *key*."""

    @abc.abstractmethod
    def exists(self, key: str) -> bool:
        """Return ``False`` only for a definite not-found.

        Any other failure is raised, never coerced to ``False``.
        """

    @abc.abstractmethod
    def stat(self, key: str) -> FileMetadata:
        """Return the object's last-modified time and size."""

    def close(self) -> None:
        """Release the underlying session. Safe to call more than once."""

    def __enter__(self) -> BaseStorage:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} provider={self.provider}>"
