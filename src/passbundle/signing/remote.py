"""Remote manifest signing.

The manifest is sent to a signing service that holds the pass certificate;
the service answers with the detached signature. This keeps the private key
off the machines producing passes.

Protocol:
- POST <url> with the raw manifest.json bytes as body
- Content-Type: application/json, plus any configured extra headers
- HTTP 200 with the signature bytes as body on success
"""

import httpx
import structlog

from passbundle.exceptions import SigningError

logger = structlog.get_logger(__name__)


class RemoteManifestSigner:
    """Signs manifests through a remote signing service.

    One request per manifest; failures are not retried.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the remote signer.

        Args:
            url: Endpoint of the signing service.
            headers: Extra request headers (e.g. an API key).
            timeout: Request timeout in seconds.
            transport: Custom httpx transport, mainly for tests.
        """
        self.url = url
        self.headers = httpx.Headers(headers or {})
        # Content-Type is fixed, whatever the casing of a configured one
        self.headers["Content-Type"] = "application/json"
        self.timeout = timeout
        self._transport = transport

    async def sign(self, manifest: bytes) -> bytes:
        """Request a signature for the manifest.

        Args:
            manifest: The exact manifest.json bytes.

        Returns:
            The response body, used as the signature file.

        Raises:
            SigningError: On any non-200 response or transport error.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, content=manifest, headers=self.headers)
        except httpx.RequestError as e:
            logger.error("remote_signing_request_error", url=self.url, error=str(e))
            raise SigningError(f"Failed to sign manifest: {e}")

        if response.status_code != 200:
            logger.warning(
                "remote_signing_failed",
                url=self.url,
                status=response.status_code,
                reason=response.reason_phrase,
                body=response.text[:200],
            )
            raise SigningError(
                f"Failed to sign manifest: {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

        signature = response.content
        logger.debug(
            "manifest_signed",
            strategy="remote",
            manifest_size=len(manifest),
            signature_size=len(signature),
        )
        return signature
