"""Signed wallet pass bundle generation."""

from passbundle.bundle import BundleFile, PassBundle, create_manifest
from passbundle.constants import PassStyle, TransitType
from passbundle.fields import DisplayField, FieldGroup, NFCField
from passbundle.images import PassImages
from passbundle.localizations import Localizations
from passbundle.settings import SigningConfig, SigningStrategy
from passbundle.signing import LocalManifestSigner, RemoteManifestSigner, get_signer
from passbundle.structure import PassStructure
from passbundle.template import PassTemplate

__all__ = [
    "BundleFile",
    "DisplayField",
    "FieldGroup",
    "LocalManifestSigner",
    "Localizations",
    "NFCField",
    "PassBundle",
    "PassImages",
    "PassStructure",
    "PassStyle",
    "PassTemplate",
    "RemoteManifestSigner",
    "SigningConfig",
    "SigningStrategy",
    "TransitType",
    "create_manifest",
    "get_signer",
]
