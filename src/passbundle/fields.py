"""Display fields, field groups and the NFC payload of a pass.

A field group is an ordered, key-unique collection of display fields shown
in one region of the pass (header, primary, secondary, auxiliary or back).
"""

import base64
import binascii
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from passbundle.constants import NFC_MESSAGE_MAX_BYTES
from passbundle.exceptions import InvalidArgumentError
from passbundle.formatting import format_iso_date

# Python attribute name -> pass.json key
_OPTIONAL_KEYS: dict[str, str] = {
    "change_message": "changeMessage",
    "text_alignment": "textAlignment",
    "attributed_value": "attributedValue",
    "date_style": "dateStyle",
    "time_style": "timeStyle",
    "number_style": "numberStyle",
    "currency_code": "currencyCode",
    "ignores_time_zone": "ignoresTimeZone",
    "is_relative": "isRelative",
    "data_detector_types": "dataDetectorTypes",
}


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_iso_date(value)
    return value


@dataclass
class DisplayField:
    """A field to display on the pass."""

    key: str
    value: Any
    label: str | None = None
    change_message: str | None = None  # Must contain "%@"
    text_alignment: str | None = None  # PKTextAlignmentLeft, Right, Center, Natural
    attributed_value: Any = None
    date_style: str | None = None
    time_style: str | None = None
    number_style: str | None = None
    currency_code: str | None = None
    ignores_time_zone: bool | None = None
    is_relative: bool | None = None
    data_detector_types: list[str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DisplayField":
        """Build a field from its pass.json form.

        Raises:
            InvalidArgumentError: If the field has no key.
        """
        data = dict(data)
        key = data.pop("key", None)
        if not key:
            raise InvalidArgumentError("Pass field must have a key")

        kwargs: dict[str, Any] = {
            "key": key,
            "value": data.pop("value", None),
            "label": data.pop("label", None),
        }
        for attr, json_key in _OPTIONAL_KEYS.items():
            if json_key in data:
                kwargs[attr] = data.pop(json_key)
        return cls(**kwargs, extra=data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the pass.json form, omitting unset keys."""
        result: dict[str, Any] = {"key": self.key}
        if self.label is not None:
            result["label"] = self.label
        result["value"] = _json_value(self.value)
        for attr, json_key in _OPTIONAL_KEYS.items():
            attr_value = getattr(self, attr)
            if attr_value is not None:
                result[json_key] = _json_value(attr_value)
        result.update(self.extra)
        return result


class FieldGroup:
    """Ordered, key-unique collection of display fields.

    Adding a field whose key already exists replaces the existing entry in
    place, keeping its position.
    """

    def __init__(self) -> None:
        self._fields: dict[str, DisplayField] = {}

    def add(self, pass_field: DisplayField | Mapping[str, Any]) -> DisplayField:
        """Add a field, replacing any field with the same key in place.

        Args:
            pass_field: A DisplayField or its pass.json mapping form.

        Returns:
            The stored field.
        """
        if not isinstance(pass_field, DisplayField):
            pass_field = DisplayField.from_dict(pass_field)
        # dict assignment to an existing key keeps insertion position
        self._fields[pass_field.key] = pass_field
        return pass_field

    def get(self, key: str) -> DisplayField | None:
        return self._fields.get(key)

    def remove(self, key: str) -> bool:
        """Remove a field by key. Returns True if a field was removed."""
        return self._fields.pop(key, None) is not None

    def clear(self) -> None:
        self._fields.clear()

    def keys(self) -> list[str]:
        return list(self._fields)

    def to_list(self) -> list[dict[str, Any]]:
        return [pass_field.to_dict() for pass_field in self._fields.values()]

    def __iter__(self) -> Iterator[DisplayField]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def __repr__(self) -> str:
        return f"FieldGroup({self.keys()!r})"


class NFCField:
    """NFC payload of a store card.

    Sent to the terminal as part of an Apple Pay transaction. Only valid on
    store cards signed with an NFC-enabled pass certificate.
    """

    def __init__(
        self,
        message: str | None = None,
        encryption_public_key: str | None = None,
        requires_authentication: bool = False,
    ) -> None:
        self._message: str | None = None
        self._encryption_public_key: str | None = None
        self.requires_authentication = requires_authentication

        if message is not None:
            self.message = message
        if encryption_public_key is not None:
            self.encryption_public_key = encryption_public_key

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NFCField":
        return cls(
            message=data.get("message"),
            encryption_public_key=data.get("encryptionPublicKey"),
            requires_authentication=bool(data.get("requiresAuthentication", False)),
        )

    @property
    def message(self) -> str | None:
        """The payload transmitted to the terminal, at most 64 bytes."""
        return self._message

    @message.setter
    def message(self, value: str | None) -> None:
        if value is not None and len(value.encode("utf-8")) > NFC_MESSAGE_MAX_BYTES:
            raise InvalidArgumentError(f"NFC message must be at most {NFC_MESSAGE_MAX_BYTES} bytes long")
        self._message = value

    @property
    def encryption_public_key(self) -> str | None:
        """Base64-encoded DER of the terminal's ECDH P-256 public key."""
        return self._encryption_public_key

    @encryption_public_key.setter
    def encryption_public_key(self, value: str | None) -> None:
        if value is not None:
            try:
                public_key = serialization.load_der_public_key(base64.b64decode(value, validate=True))
            except (binascii.Error, ValueError) as e:
                raise InvalidArgumentError(f"Failed to load NFC public key: {e}")
            self._check_public_key(public_key)
        self._encryption_public_key = value

    def set_public_key(self, pem: str | bytes) -> None:
        """Set the encryption public key from a PEM-encoded P-256 public key.

        Raises:
            InvalidArgumentError: If the key cannot be loaded or is not P-256.
        """
        if isinstance(pem, str):
            pem = pem.encode("ascii")
        try:
            public_key = serialization.load_pem_public_key(pem)
        except ValueError as e:
            raise InvalidArgumentError(f"Failed to load NFC public key: {e}")
        self._check_public_key(public_key)

        der = public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        self._encryption_public_key = base64.b64encode(der).decode("ascii")

    @staticmethod
    def _check_public_key(public_key: Any) -> None:
        if not isinstance(public_key, ec.EllipticCurvePublicKey) or not isinstance(public_key.curve, ec.SECP256R1):
            raise InvalidArgumentError("NFC encryption public key must be an ECDH P-256 key")

    @property
    def is_empty(self) -> bool:
        return self._message is None and self._encryption_public_key is None and not self.requires_authentication

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self._message is not None:
            result["message"] = self._message
        if self._encryption_public_key is not None:
            result["encryptionPublicKey"] = self._encryption_public_key
        if self.requires_authentication:
            result["requiresAuthentication"] = True
        return result
