"""Contract required from the external DOI registrar."""

from typing import Any, Protocol


class RegistrarError(Exception):
    """Raised by registrar clients for network or protocol failures."""


class DoiRegistrar(Protocol):
    """The two registrar operations the dispatcher relies on.

    Both return the identifier together with the metadata the registrar
    now holds for it. Neither retries; callers impose timeouts.
    """

    async def register(self) -> tuple[str, dict[str, Any]]:
        """Reserve a new draft identifier with no public metadata."""
        ...

    async def publish(
        self,
        doi: str | None,
        metadata: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        """Publish metadata, minting a findable identifier when doi is None."""
        ...
