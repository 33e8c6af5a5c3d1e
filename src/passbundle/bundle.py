"""Wallet pass bundle assembly.

This module produces .pkpass files. A .pkpass file is a ZIP archive
containing:
- pass.json: The pass definition
- <lang>.lproj/pass.strings: Localized strings
- Images: icon, logo, thumbnail, etc.
- manifest.json: SHA-1 hashes of all files above
- signature: PKCS#7 signature of the manifest
"""

import hashlib
import json
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, NamedTuple

import structlog

from passbundle.archive import create_archive
from passbundle.constants import (
    CONTENT_TYPE,
    DATE_FIELDS,
    FILE_EXTENSION,
    MANIFEST_FILENAME,
    MIN_AUTH_TOKEN_LENGTH,
    PASS_FILENAME,
    REQUIRED_FIELDS,
    SIGNATURE_FILENAME,
    PassStyle,
)
from passbundle.exceptions import (
    InvalidArgumentError,
    MissingConfigurationError,
    MissingFieldError,
    PassValidationError,
    TokenTooShortError,
    UnexpectedFieldError,
)
from passbundle.formatting import format_iso_date
from passbundle.images import PassImages
from passbundle.localizations import Localizations
from passbundle.protocols import ManifestSigner
from passbundle.settings import SigningConfig
from passbundle.signing import get_signer
from passbundle.structure import PassStructure

logger = structlog.get_logger(__name__)

# Keys owned by PassStructure rather than the top-level attributes
_STRUCTURE_KEYS = frozenset({*(style.value for style in PassStyle), "nfc"})


class BundleFile(NamedTuple):
    path: str
    data: bytes


def create_manifest(files: Iterable[tuple[str, bytes]]) -> bytes:
    """Create the manifest.json content for a pass.

    The manifest contains SHA-1 hashes of all files in the pass package.

    Args:
        files: (path, content) pairs.

    Returns:
        The manifest.json content as bytes.
    """
    manifest: dict[str, str] = {}

    for filename, content in files:
        # Skip manifest and signature files themselves
        if filename in (MANIFEST_FILENAME, SIGNATURE_FILENAME):
            continue
        manifest[filename] = hashlib.sha1(content).hexdigest()

    return json.dumps(manifest, indent=2).encode("utf-8")


class PassBundle(PassStructure):
    """A wallet pass and everything needed to produce its signed bundle.

    Top-level descriptor attributes are accessed like a mapping
    (``bundle["serialNumber"]``); the style, its field groups, the transit type
    and the NFC payload go through the PassStructure accessors.
    """

    def __init__(
        self,
        fields: Mapping[str, Any] | None = None,
        images: PassImages | None = None,
        localizations: Localizations | None = None,
        config: SigningConfig | None = None,
        signer: ManifestSigner | None = None,
    ) -> None:
        """Initialize the pass.

        Args:
            fields: Partial pass descriptor (pass.json form).
            images: Image assets. Defaults to an empty set.
            localizations: Localized strings. Defaults to none.
            config: Signing configuration used to pick the signer.
            signer: Explicit signer, takes precedence over config.
        """
        fields = dict(fields or {})
        super().__init__(fields)
        self.attributes: dict[str, Any] = {
            key: value for key, value in fields.items() if key not in _STRUCTURE_KEYS
        }
        self.attributes.setdefault("formatVersion", 1)
        self.images = images if images is not None else PassImages()
        self.localizations = localizations if localizations is not None else Localizations()
        self.config = config
        self.signer = signer

    @property
    def content_type(self) -> str:
        """MIME type of the produced bundle."""
        return CONTENT_TYPE

    @property
    def file_extension(self) -> str:
        """File extension of the produced bundle, without the dot."""
        return FILE_EXTENSION

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if key in _STRUCTURE_KEYS:
            raise InvalidArgumentError(f"{key} is part of the pass structure, use the style accessors")
        self.attributes[key] = value

    def __delitem__(self, key: str) -> None:
        del self.attributes[key]

    def __contains__(self, key: object) -> bool:
        return key in self.attributes

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def validate(self) -> None:
        """Validate the pass before producing a bundle.

        Raises:
            MissingFieldError: If a required top-level attribute is missing.
            PassValidationError: If webServiceURL is set without a string
                authenticationToken.
            TokenTooShortError: If authenticationToken is too short.
            UnexpectedFieldError: If authenticationToken is set without
                webServiceURL.
            MissingImageError: If a required image is missing.
        """
        for name in REQUIRED_FIELDS:
            if self.attributes.get(name) is None:
                raise MissingFieldError(name)

        # authenticationToken && webServiceURL must be either both or none
        if "webServiceURL" in self.attributes:
            token = self.attributes.get("authenticationToken")
            if not isinstance(token, str):
                raise PassValidationError("While webServiceURL is present, authenticationToken also required")
            if len(token) < MIN_AUTH_TOKEN_LENGTH:
                raise TokenTooShortError(
                    f"authenticationToken must be at least {MIN_AUTH_TOKEN_LENGTH} characters long"
                )
        elif "authenticationToken" in self.attributes:
            raise UnexpectedFieldError(
                "authenticationToken is present in pass data while webServiceURL is missing",
                field_name="authenticationToken",
            )

        self.images.validate()

    def to_dict(self) -> dict[str, Any]:
        """Serialize the whole descriptor in pass.json form."""
        result: dict[str, Any] = {}
        for key, value in self.attributes.items():
            if key in DATE_FIELDS and isinstance(value, datetime):
                value = format_iso_date(value)
            result[key] = value
        result.update(super().to_dict())
        return result

    def to_json(self) -> bytes:
        """Generate the pass.json content."""
        return json.dumps(self.to_dict(), indent=2).encode("utf-8")

    def _resolve_signer(self) -> ManifestSigner:
        if self.signer is not None:
            return self.signer
        if self.config is None:
            raise MissingConfigurationError("No signing configuration given for this pass", setting="config")
        return get_signer(self.config)

    async def produce_bundle(self) -> bytes:
        """Produce the signed .pkpass archive.

        Returns:
            The .pkpass file as bytes.

        Raises:
            PassBundleError: Any validation, configuration or signing error;
                no archive is produced in that case.
        """
        self.validate()
        signer = self._resolve_signer()

        files: list[BundleFile] = []
        seen: set[str] = set()

        def append(path: str, data: bytes) -> None:
            if path in seen:
                raise PassValidationError(f"Duplicate file in pass bundle: {path}")
            seen.add(path)
            files.append(BundleFile(path, data))

        append(PASS_FILENAME, self.to_json())
        for path, data in self.localizations.to_files():
            append(path, data)
        for path, data in await self.images.to_files():
            append(path, data)

        manifest = create_manifest(files)
        append(MANIFEST_FILENAME, manifest)

        signature = await signer.sign(manifest)
        append(SIGNATURE_FILENAME, signature)

        pkpass_bytes = create_archive(files)

        logger.info(
            "pass_bundle_produced",
            serial_number=self.attributes.get("serialNumber"),
            style=self.style,
            files=len(files),
            size=len(pkpass_bytes),
        )
        return pkpass_bytes
