"""Manifest signing strategies."""

from passbundle.exceptions import MissingConfigurationError
from passbundle.protocols import ManifestSigner
from passbundle.settings import SigningConfig, SigningStrategy
from passbundle.signing.local import LocalManifestSigner
from passbundle.signing.remote import RemoteManifestSigner

__all__ = [
    "LocalManifestSigner",
    "RemoteManifestSigner",
    "get_signer",
]


def get_signer(config: SigningConfig) -> ManifestSigner:
    """Create the signer selected by the configuration.

    Args:
        config: The signing configuration.

    Returns:
        A local or remote manifest signer.

    Raises:
        MissingConfigurationError: If local signing lacks a certificate or key.
    """
    if config.strategy is SigningStrategy.REMOTE:
        return RemoteManifestSigner(
            url=config.sign_url,
            headers=config.sign_headers,
            timeout=config.timeout,
        )

    if not config.cert_path:
        raise MissingConfigurationError(
            "Set the pass certificate (PASS_CERT_PATH) before producing pass bundles",
            setting="cert_path",
        )
    if not config.key_path:
        raise MissingConfigurationError(
            "Set the pass private key (PASS_KEY_PATH) before producing pass bundles",
            setting="key_path",
        )
    return LocalManifestSigner(
        cert_path=config.cert_path,
        key_path=config.key_path,
        key_password=config.key_password,
        wwdr_cert_path=config.wwdr_cert_path,
    )
