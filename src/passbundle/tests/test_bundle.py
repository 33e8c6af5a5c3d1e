"""Tests for passbundle/bundle.py."""

import hashlib
import io
import json
import shutil
import zipfile
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from passbundle.bundle import PassBundle, create_manifest
from passbundle.exceptions import (
    InvalidArgumentError,
    MissingConfigurationError,
    MissingFieldError,
    MissingImageError,
    PassValidationError,
    SigningError,
    TokenTooShortError,
    UnexpectedFieldError,
)
from passbundle.images import PassImages
from passbundle.localizations import Localizations
from passbundle.settings import SigningConfig, SigningStrategy
from passbundle.signing import RemoteManifestSigner


def _unzip(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


class TestCreateManifest:
    """Tests for manifest creation."""

    def test_sha1_hashes(self) -> None:
        files = [("pass.json", b'{"formatVersion": 1}'), ("icon.png", b"fake_icon_data")]

        manifest = json.loads(create_manifest(files))

        assert manifest == {
            "pass.json": hashlib.sha1(b'{"formatVersion": 1}').hexdigest(),
            "icon.png": hashlib.sha1(b"fake_icon_data").hexdigest(),
        }

    def test_excludes_manifest_and_signature(self) -> None:
        files = [
            ("pass.json", b"{}"),
            ("manifest.json", b'{"existing": "manifest"}'),
            ("signature", b"existing_signature"),
        ]
        assert list(json.loads(create_manifest(files))) == ["pass.json"]

    def test_empty(self) -> None:
        assert json.loads(create_manifest([])) == {}


class TestPassBundleAttributes:
    """Tests for top-level attribute access."""

    def test_splits_attributes_from_structure(self, pass_fields: dict[str, Any]) -> None:
        bundle = PassBundle(pass_fields)

        assert bundle["serialNumber"] == "SN-0001"
        assert "storeCard" not in bundle.attributes
        assert bundle.style == "storeCard"
        assert bundle.primary_fields.keys() == ["name"]

    def test_format_version_default(self) -> None:
        assert PassBundle()["formatVersion"] == 1

    def test_style_keys_rejected(self) -> None:
        bundle = PassBundle()
        with pytest.raises(InvalidArgumentError, match="style accessors"):
            bundle["coupon"] = {}

    def test_set_get_delete(self) -> None:
        bundle = PassBundle()
        bundle["logoText"] = "Coffee"
        assert bundle.get("logoText") == "Coffee"
        del bundle["logoText"]
        assert "logoText" not in bundle
        assert bundle.get("logoText", "none") == "none"

    def test_content_type(self) -> None:
        bundle = PassBundle()
        assert bundle.content_type == "application/vnd.apple.pkpass"
        assert bundle.file_extension == "pkpass"


class TestPassBundleValidate:
    """Tests for validate()."""

    def test_valid_pass(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        PassBundle(pass_fields, images=pass_images).validate()

    @pytest.mark.parametrize(
        "missing",
        ["description", "organizationName", "passTypeIdentifier", "serialNumber", "teamIdentifier"],
    )
    def test_missing_required_field(
        self, pass_fields: dict[str, Any], pass_images: PassImages, missing: str
    ) -> None:
        del pass_fields[missing]

        with pytest.raises(MissingFieldError, match=missing) as exc_info:
            PassBundle(pass_fields, images=pass_images).validate()
        assert exc_info.value.field_name == missing

    def test_reports_first_missing_field(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        del pass_fields["serialNumber"]
        del pass_fields["teamIdentifier"]
        del pass_fields["organizationName"]

        with pytest.raises(MissingFieldError) as exc_info:
            PassBundle(pass_fields, images=pass_images).validate()
        assert exc_info.value.field_name == "organizationName"

    def test_web_service_url_without_token(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        pass_fields["webServiceURL"] = "https://example.com/passes"

        with pytest.raises(PassValidationError, match="authenticationToken also required") as exc_info:
            PassBundle(pass_fields, images=pass_images).validate()
        assert type(exc_info.value) is PassValidationError

    def test_web_service_url_with_non_string_token(
        self, pass_fields: dict[str, Any], pass_images: PassImages
    ) -> None:
        pass_fields["webServiceURL"] = "https://example.com/passes"
        pass_fields["authenticationToken"] = 1234567890123456789

        with pytest.raises(PassValidationError):
            PassBundle(pass_fields, images=pass_images).validate()

    def test_token_too_short(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        pass_fields["webServiceURL"] = "https://x"
        pass_fields["authenticationToken"] = "short"

        with pytest.raises(TokenTooShortError, match="at least 16"):
            PassBundle(pass_fields, images=pass_images).validate()

    def test_token_without_url(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        pass_fields["authenticationToken"] = "a" * 16

        with pytest.raises(UnexpectedFieldError) as exc_info:
            PassBundle(pass_fields, images=pass_images).validate()
        assert exc_info.value.field_name == "authenticationToken"

    def test_url_with_valid_token(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        pass_fields["webServiceURL"] = "https://example.com/passes"
        pass_fields["authenticationToken"] = "a" * 16

        PassBundle(pass_fields, images=pass_images).validate()

    def test_missing_images(self, pass_fields: dict[str, Any]) -> None:
        with pytest.raises(MissingImageError):
            PassBundle(pass_fields).validate()


class TestPassBundleToJson:
    """Tests for descriptor serialization."""

    def test_contains_attributes_and_style(self, pass_fields: dict[str, Any]) -> None:
        data = json.loads(PassBundle(pass_fields).to_json())

        assert data["formatVersion"] == 1
        assert data["serialNumber"] == "SN-0001"
        assert data["backgroundColor"] == "rgb(20, 20, 40)"
        assert data["storeCard"] == pass_fields["storeCard"]

    def test_single_style_key(self, pass_fields: dict[str, Any]) -> None:
        bundle = PassBundle(pass_fields)
        bundle.style = "coupon"

        data = bundle.to_dict()

        assert "coupon" in data
        assert "storeCard" not in data

    def test_formats_dates(self) -> None:
        bundle = PassBundle({"relevantDate": datetime(2025, 1, 3, 19, 0, tzinfo=timezone.utc)})
        assert bundle.to_dict()["relevantDate"] == "2025-01-03T19:00:00+00:00"

    def test_duplicate_field_replaced_in_place(self, pass_fields: dict[str, Any]) -> None:
        """A second field with the same key replaces the first at its position."""
        bundle = PassBundle(pass_fields)
        bundle.secondary_fields.add({"key": "level", "label": "LEVEL", "value": "Silver"})
        bundle.secondary_fields.add({"key": "since", "label": "SINCE", "value": "2021"})
        bundle.secondary_fields.add({"key": "level", "label": "LEVEL", "value": "Gold"})

        secondary = bundle.to_dict()["storeCard"]["secondaryFields"]

        assert len(secondary) == 2
        assert [f["key"] for f in secondary] == ["level", "since"]
        assert secondary[0]["value"] == "Gold"


@pytest.mark.asyncio
class TestPassBundleProduce:
    """Tests for produce_bundle()."""

    async def test_produces_complete_archive(
        self, pass_fields: dict[str, Any], pass_images: PassImages, mock_signer: MagicMock
    ) -> None:
        localizations = Localizations()
        localizations.add("de", {"MEMBER": "Mitglied"})
        bundle = PassBundle(pass_fields, images=pass_images, localizations=localizations, signer=mock_signer)

        files = _unzip(await bundle.produce_bundle())

        assert set(files) == {
            "pass.json",
            "de.lproj/pass.strings",
            "icon.png",
            "logo.png",
            "manifest.json",
            "signature",
        }
        assert json.loads(files["pass.json"])["serialNumber"] == "SN-0001"
        assert files["signature"] == b"mock_signature_bytes"

    async def test_manifest_covers_every_file(
        self, pass_fields: dict[str, Any], pass_images: PassImages, mock_signer: MagicMock
    ) -> None:
        bundle = PassBundle(pass_fields, images=pass_images, signer=mock_signer)

        files = _unzip(await bundle.produce_bundle())
        manifest = json.loads(files["manifest.json"])

        assert set(manifest) == set(files) - {"manifest.json", "signature"}
        for path, digest in manifest.items():
            assert hashlib.sha1(files[path]).hexdigest() == digest

    async def test_signs_exact_manifest_bytes(
        self, pass_fields: dict[str, Any], pass_images: PassImages, mock_signer: MagicMock
    ) -> None:
        bundle = PassBundle(pass_fields, images=pass_images, signer=mock_signer)

        files = _unzip(await bundle.produce_bundle())

        mock_signer.sign.assert_awaited_once_with(files["manifest.json"])

    async def test_validation_failure_produces_nothing(
        self, pass_fields: dict[str, Any], pass_images: PassImages, mock_signer: MagicMock
    ) -> None:
        del pass_fields["serialNumber"]
        bundle = PassBundle(pass_fields, images=pass_images, signer=mock_signer)

        with pytest.raises(MissingFieldError, match="serialNumber"):
            await bundle.produce_bundle()
        mock_signer.sign.assert_not_awaited()

    async def test_local_strategy_missing_key(
        self, pass_fields: dict[str, Any], pass_images: PassImages, cert_files: dict[str, str]
    ) -> None:
        config = SigningConfig(strategy=SigningStrategy.LOCAL, cert_path=cert_files["cert_path"])
        bundle = PassBundle(pass_fields, images=pass_images, config=config)

        with pytest.raises(MissingConfigurationError, match="private key") as exc_info:
            await bundle.produce_bundle()
        assert exc_info.value.setting == "key_path"

    async def test_no_configuration(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        with pytest.raises(MissingConfigurationError):
            await PassBundle(pass_fields, images=pass_images).produce_bundle()

    async def test_remote_signing_failure(self, pass_fields: dict[str, Any], pass_images: PassImages) -> None:
        """A 503 from the signing service should fail the whole production."""
        signer = RemoteManifestSigner(
            url="https://signer.example.com/sign",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        bundle = PassBundle(pass_fields, images=pass_images, signer=signer)

        with (
            patch("passbundle.bundle.create_archive") as mock_create_archive,
            pytest.raises(SigningError, match="Service Unavailable"),
        ):
            await bundle.produce_bundle()
        mock_create_archive.assert_not_called()

    async def test_remote_strategy_from_config(
        self, pass_fields: dict[str, Any], pass_images: PassImages
    ) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=b"remote-signature")

        config = SigningConfig(strategy=SigningStrategy.REMOTE, sign_url="https://signer.example.com/sign")
        bundle = PassBundle(pass_fields, images=pass_images, config=config)

        real_signer = RemoteManifestSigner
        with patch(
            "passbundle.signing.RemoteManifestSigner",
            lambda **kwargs: real_signer(**kwargs, transport=httpx.MockTransport(handler)),
        ):
            files = _unzip(await bundle.produce_bundle())

        assert files["signature"] == b"remote-signature"
        assert requests[0].content == files["manifest.json"]

    async def test_duplicate_path_is_rejected(
        self, pass_fields: dict[str, Any], pass_images: PassImages, mock_signer: MagicMock
    ) -> None:
        localizations = MagicMock()
        localizations.to_files.return_value = [("icon.png", b"not really strings")]
        bundle = PassBundle(pass_fields, images=pass_images, localizations=localizations, signer=mock_signer)

        with pytest.raises(PassValidationError, match="Duplicate file"):
            await bundle.produce_bundle()

    async def test_successive_productions_are_independent(
        self, pass_fields: dict[str, Any], pass_images: PassImages, mock_signer: MagicMock
    ) -> None:
        bundle = PassBundle(pass_fields, images=pass_images, signer=mock_signer)

        first = _unzip(await bundle.produce_bundle())
        bundle["serialNumber"] = "SN-0002"
        second = _unzip(await bundle.produce_bundle())

        assert json.loads(first["pass.json"])["serialNumber"] == "SN-0001"
        assert json.loads(second["pass.json"])["serialNumber"] == "SN-0002"
        assert first["manifest.json"] != second["manifest.json"]

    @pytest.mark.skipif(shutil.which("openssl") is None, reason="openssl binary not available")
    async def test_local_signing_end_to_end(
        self, pass_fields: dict[str, Any], pass_images: PassImages, local_config: SigningConfig
    ) -> None:
        bundle = PassBundle(pass_fields, images=pass_images, config=local_config)

        files = _unzip(await bundle.produce_bundle())

        assert files["signature"][0] == 0x30
        assert set(json.loads(files["manifest.json"])) == set(files) - {"manifest.json", "signature"}
