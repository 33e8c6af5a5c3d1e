"""Protocol definitions for manifest signers.

Signing strategies (local certificate, remote service) implement this
protocol so the bundle assembler can use them interchangeably.
"""

from typing import Protocol


class ManifestSigner(Protocol):
    """Protocol for manifest signers."""

    async def sign(self, manifest: bytes) -> bytes:
        """Create a detached signature of the manifest.

        Args:
            manifest: The exact manifest.json bytes.

        Returns:
            The signature file content.

        Raises:
            SigningError: If the signature cannot be produced.
        """
        ...
