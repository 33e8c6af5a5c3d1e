"""Local manifest signing using PKCS#7.

The signature file of a bundle is a detached DER PKCS#7 signature over
manifest.json, made with the pass certificate and carrying the WWDR
intermediate certificate when one is configured.

NOTE: the Python cryptography library cannot produce the SHA-1 PKCS#7
signatures older Wallet versions expect, so OpenSSL is used via
subprocess for signing. cryptography is used to load and check the
certificate material.
"""

import subprocess
import tempfile
from pathlib import Path
from typing import Any

import structlog
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from passbundle.exceptions import MissingConfigurationError, SigningError

logger = structlog.get_logger(__name__)


class LocalManifestSigner:
    """Signs manifests with a locally available certificate and key.

    Certificates and keys are only loaded (for validation) on access; signing
    itself hands the paths to OpenSSL.
    """

    def __init__(
        self,
        cert_path: str,
        key_path: str,
        key_password: str | None = None,
        wwdr_cert_path: str | None = None,
    ) -> None:
        """Store the paths; nothing is read until needed.

        Args:
            cert_path: PEM file of the pass certificate.
            key_path: PEM file of the matching private key.
            key_password: Passphrase of an encrypted key.
            wwdr_cert_path: PEM file of the WWDR intermediate certificate.
        """
        self.cert_path = cert_path
        self.key_path = key_path
        self.key_password = key_password or None
        self.wwdr_cert_path = wwdr_cert_path or None

        self._certificate: x509.Certificate | None = None
        self._private_key: Any = None
        self._wwdr_certificate: x509.Certificate | None = None

    def _load_certificate(self, path: str) -> x509.Certificate:
        """Read a PEM certificate.

        Raises:
            SigningError: If the certificate cannot be loaded.
        """
        try:
            return x509.load_pem_x509_certificate(Path(path).read_bytes())
        except FileNotFoundError:
            raise SigningError(f"Certificate not found: {path}")
        except ValueError as e:
            raise SigningError(f"Failed to load certificate {path}: {e}")

    def _load_private_key(self, path: str, password: str | None = None) -> Any:
        """Read a PEM private key.

        Raises:
            SigningError: If the key cannot be loaded.
        """
        try:
            password_bytes = password.encode() if password else None
            return serialization.load_pem_private_key(Path(path).read_bytes(), password=password_bytes)
        except FileNotFoundError:
            raise SigningError(f"Private key not found: {path}")
        except (ValueError, TypeError) as e:
            raise SigningError(f"Failed to load private key {path}: {e}")

    @property
    def certificate(self) -> x509.Certificate:
        """Pass certificate, loaded on first access."""
        if self._certificate is None:
            self._certificate = self._load_certificate(self.cert_path)
        return self._certificate

    @property
    def private_key(self) -> Any:
        """Private key, loaded on first access."""
        if self._private_key is None:
            self._private_key = self._load_private_key(self.key_path, self.key_password)
        return self._private_key

    @property
    def wwdr_certificate(self) -> x509.Certificate | None:
        """WWDR intermediate certificate, or None when not configured."""
        if self._wwdr_certificate is None and self.wwdr_cert_path:
            self._wwdr_certificate = self._load_certificate(self.wwdr_cert_path)
        return self._wwdr_certificate

    def is_configured(self) -> bool:
        """Check if certificate and key paths are set."""
        return bool(self.cert_path and self.key_path)

    def validate_configuration(self) -> None:
        """Validate that the signing material can be loaded and belongs together.

        Raises:
            MissingConfigurationError: If certificate or key path is unset.
            SigningError: If the material cannot be loaded or the key does not
                match the certificate.
        """
        if not self.cert_path:
            raise MissingConfigurationError("Pass certificate is not configured", setting="cert_path")
        if not self.key_path:
            raise MissingConfigurationError("Pass private key is not configured", setting="key_path")

        cert_public = self.certificate.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        key_public = self.private_key.public_key().public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
        if cert_public != key_public:
            raise SigningError("Private key does not match the pass certificate")

        _ = self.wwdr_certificate

        logger.info("local_signer_validated", subject=self.certificate.subject.rfc4514_string())

    def sign_manifest(self, manifest_data: bytes) -> bytes:
        """Sign the manifest with openssl smime.

        Args:
            manifest_data: Exact manifest.json bytes.

        Returns:
            DER encoded detached signature.

        Raises:
            SigningError: If signing fails.
        """
        temp_paths: list[Path] = []
        try:
            with tempfile.NamedTemporaryFile(mode="wb", suffix=".json", delete=False) as manifest_file:
                temp_paths.append(Path(manifest_file.name))
                manifest_file.write(manifest_data)
            with tempfile.NamedTemporaryFile(mode="wb", suffix=".sig", delete=False) as sig_file:
                temp_paths.append(Path(sig_file.name))
            manifest_path, sig_path = manifest_file.name, sig_file.name

            # openssl smime -sign -signer cert.pem -inkey key.pem -certfile wwdr.pem
            #   -in manifest.json -out signature -outform DER -binary
            cmd = [
                "openssl",
                "smime",
                "-sign",
                "-signer",
                self.cert_path,
                "-inkey",
                self.key_path,
                "-in",
                manifest_path,
                "-out",
                sig_path,
                "-outform",
                "DER",
                "-binary",
            ]
            if self.wwdr_cert_path:
                cmd.extend(["-certfile", self.wwdr_cert_path])
            if self.key_password:
                cmd.extend(["-passin", f"pass:{self.key_password}"])

            try:
                result = subprocess.run(cmd, capture_output=True, text=True, check=False)
            except OSError as e:
                logger.error("openssl_unavailable", error=str(e))
                raise SigningError(f"Failed to run OpenSSL: {e}")

            if result.returncode != 0:
                logger.error(
                    "openssl_signing_failed",
                    returncode=result.returncode,
                    stderr=result.stderr,
                )
                raise SigningError(f"OpenSSL signing failed: {result.stderr}")

            signature = Path(sig_path).read_bytes()
        finally:
            for temp_path in temp_paths:
                temp_path.unlink(missing_ok=True)

        logger.debug(
            "manifest_signed",
            strategy="local",
            manifest_size=len(manifest_data),
            signature_size=len(signature),
        )
        return signature

    async def sign(self, manifest: bytes) -> bytes:
        return self.sign_manifest(manifest)
