"""Test fixtures for pass bundle tests.

This module provides fixtures for testing pass bundle production,
including generated certificates, sample images and pre-configured
pass data.
"""

import io
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509 import CertificateBuilder, Name, NameAttribute
from cryptography.x509.oid import NameOID
from PIL import Image

from passbundle.images import PassImages
from passbundle.settings import SigningConfig, SigningStrategy

# --- Certificate Fixtures ---


def _self_signed(private_key: rsa.RSAPrivateKey, attributes: list[NameAttribute]) -> x509.Certificate:
    subject = issuer = Name(attributes)
    now = datetime.now(dt_timezone.utc)
    return (
        CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=365))
        .sign(private_key, hashes.SHA256())
    )


@pytest.fixture
def mock_private_key() -> rsa.RSAPrivateKey:
    """Generate an RSA private key for testing."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def mock_certificate(mock_private_key: rsa.RSAPrivateKey) -> x509.Certificate:
    """Generate a Pass Type ID style X.509 certificate for testing."""
    return _self_signed(
        mock_private_key,
        [
            NameAttribute(NameOID.COUNTRY_NAME, "US"),
            NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
            NameAttribute(NameOID.COMMON_NAME, "Pass Type ID: pass.com.example.test"),
        ],
    )


@pytest.fixture
def mock_wwdr_certificate(mock_private_key: rsa.RSAPrivateKey) -> x509.Certificate:
    """Generate a mock Apple WWDR certificate for testing."""
    return _self_signed(
        mock_private_key,
        [
            NameAttribute(NameOID.COUNTRY_NAME, "US"),
            NameAttribute(NameOID.ORGANIZATION_NAME, "Apple Inc."),
            NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "Apple Worldwide Developer Relations"),
            NameAttribute(NameOID.COMMON_NAME, "Apple Worldwide Developer Relations Certification Authority"),
        ],
    )


@pytest.fixture
def cert_files(
    tmp_path: Path,
    mock_private_key: rsa.RSAPrivateKey,
    mock_certificate: x509.Certificate,
    mock_wwdr_certificate: x509.Certificate,
) -> dict[str, str]:
    """Write the generated certificates and key as PEM files."""
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    wwdr_path = tmp_path / "wwdr.pem"

    cert_path.write_bytes(mock_certificate.public_bytes(serialization.Encoding.PEM))
    wwdr_path.write_bytes(mock_wwdr_certificate.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        mock_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return {"cert_path": str(cert_path), "key_path": str(key_path), "wwdr_cert_path": str(wwdr_path)}


@pytest.fixture
def local_config(cert_files: dict[str, str]) -> SigningConfig:
    return SigningConfig(strategy=SigningStrategy.LOCAL, **cert_files)


@pytest.fixture
def mock_signer() -> MagicMock:
    """Create a signer whose sign() returns fixed bytes."""
    signer = MagicMock()
    signer.sign = AsyncMock(return_value=b"mock_signature_bytes")
    return signer


# --- Image Fixtures ---


def _png(size: tuple[int, int], color: tuple[int, int, int]) -> bytes:
    img = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def icon_bytes() -> bytes:
    """A 29x29 PNG icon."""
    return _png((29, 29), (255, 0, 0))


@pytest.fixture
def logo_bytes() -> bytes:
    """A 160x50 PNG logo."""
    return _png((160, 50), (0, 0, 255))


@pytest.fixture
def pass_images(icon_bytes: bytes, logo_bytes: bytes) -> PassImages:
    """An image set with the required icon and logo."""
    images = PassImages()
    images.add("icon", icon_bytes)
    images.add("logo", logo_bytes)
    return images


# --- Pass Data Fixtures ---


@pytest.fixture
def pass_fields() -> dict[str, Any]:
    """A complete store card descriptor."""
    return {
        "description": "Coffee loyalty card",
        "organizationName": "Test Coffee",
        "passTypeIdentifier": "pass.com.example.test",
        "serialNumber": "SN-0001",
        "teamIdentifier": "TEAM123456",
        "backgroundColor": "rgb(20, 20, 40)",
        "storeCard": {
            "headerFields": [{"key": "points", "label": "POINTS", "value": 120}],
            "primaryFields": [{"key": "name", "label": "MEMBER", "value": "Jane Doe"}],
        },
    }
