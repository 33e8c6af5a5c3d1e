"""Pass structure: the style-exclusive part of a pass descriptor.

A pass has at most one style (boardingPass, coupon, eventTicket, storeCard,
generic). Each style owns its own field groups; boarding passes additionally
carry a transit type and store cards an NFC payload. The active style is
held as one section object and replaced wholesale when the style changes.

See: https://developer.apple.com/documentation/walletpasses/passfields
"""

import copy
from collections.abc import Mapping
from typing import Any

from passbundle.constants import PASS_STYLES, STRUCTURE_FIELDS, TRANSIT_TYPE_ALIASES, PassStyle, TransitType
from passbundle.exceptions import InvalidArgumentError, PreconditionError
from passbundle.fields import FieldGroup, NFCField


class StyleSection:
    """Field groups of the active pass style, created lazily."""

    style: PassStyle

    def __init__(self, style: PassStyle) -> None:
        self.style = style
        self.groups: dict[str, FieldGroup] = {}

    def group(self, name: str) -> FieldGroup:
        if name not in self.groups:
            self.groups[name] = FieldGroup()
        return self.groups[name]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name in STRUCTURE_FIELDS:
            group = self.groups.get(name)
            if group:
                result[name] = group.to_list()
        return result


class BoardingPassSection(StyleSection):
    """Boarding pass section, the only one with a transit type."""

    def __init__(self) -> None:
        super().__init__(PassStyle.BOARDING_PASS)
        self.transit_type: TransitType | None = None

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.transit_type is not None:
            result["transitType"] = self.transit_type.value
        return result


class StoreCardSection(StyleSection):
    """Store card section, the only one with an NFC payload."""

    def __init__(self) -> None:
        super().__init__(PassStyle.STORE_CARD)
        self.nfc = NFCField()


def _create_section(style: PassStyle) -> StyleSection:
    if style is PassStyle.BOARDING_PASS:
        return BoardingPassSection()
    if style is PassStyle.STORE_CARD:
        return StoreCardSection()
    return StyleSection(style)


def _parse_style(value: str) -> PassStyle:
    try:
        return PassStyle(value)
    except ValueError:
        raise InvalidArgumentError(f'Invalid pass style "{value}"')


def _parse_transit_type(value: str) -> TransitType:
    try:
        return TRANSIT_TYPE_ALIASES[value]
    except KeyError:
        raise InvalidArgumentError(f'Unknown transit type "{value}"')


class PassStructure:
    """Style state of a pass with its field groups.

    Not safe for concurrent mutation; use one instance per builder.
    """

    def __init__(self, fields: Mapping[str, Any] | None = None) -> None:
        """Initialize from a partial pass descriptor.

        Args:
            fields: Descriptor mapping. Only the style object, the transit type
                and the NFC payload are read here.
        """
        self._section: StyleSection | None = None
        if not fields:
            return

        # The last style key wins when a descriptor carries several
        styles = [PassStyle(key) for key in fields if key in PASS_STYLES]
        if not styles:
            return
        style = styles[-1]
        self.style = style
        source = fields[style.value] or {}

        if style is PassStyle.BOARDING_PASS:
            self.transit_type = source.get("transitType")
        elif style is PassStyle.STORE_CARD:
            nfc_data = fields.get("nfc", source.get("nfc"))
            if isinstance(nfc_data, NFCField):
                self._store_card.nfc = copy.deepcopy(nfc_data)
            elif nfc_data:
                self._store_card.nfc = NFCField.from_dict(nfc_data)

        for name in STRUCTURE_FIELDS:
            entries = source.get(name)
            if not entries:
                continue
            destination = self._group(name)
            for entry in entries:
                # Lists hold mappings, FieldGroups yield DisplayFields; both are copied
                destination.add(copy.deepcopy(entry))

    @property
    def style(self) -> PassStyle | None:
        """Pass style, e.g. boardingPass, coupon. None when unset."""
        return self._section.style if self._section else None

    @style.setter
    def style(self, value: PassStyle | str | None) -> None:
        if self._section is not None and self._section.style == value:
            return
        # The previous style is gone even if the new value is rejected
        self._section = None
        if not value:
            return
        self._section = _create_section(_parse_style(value))

    @property
    def transit_type(self) -> TransitType | None:
        """Type of transit. Only allowed on boarding passes."""
        if not isinstance(self._section, BoardingPassSection):
            raise PreconditionError(
                f"transitType field only allowed in boarding passes, current pass is {self.style}"
            )
        return self._section.transit_type

    @transit_type.setter
    def transit_type(self, value: TransitType | str | None) -> None:
        if self._section is None:
            # Clearing the transit type of a style-less pass does nothing
            if not value:
                return
            self.style = PassStyle.BOARDING_PASS
        if not isinstance(self._section, BoardingPassSection):
            raise PreconditionError("transitType field is only allowed in boarding passes")

        if not value:
            self._section.transit_type = None
        else:
            self._section.transit_type = _parse_transit_type(value)

    @property
    def nfc(self) -> NFCField:
        """NFC payload. Only available on store cards."""
        return self._store_card.nfc

    @property
    def _store_card(self) -> StoreCardSection:
        if not isinstance(self._section, StoreCardSection):
            raise PreconditionError(f"NFC fields only available for storeCard passes, current is {self.style}")
        return self._section

    def _group(self, name: str) -> FieldGroup:
        if self._section is None:
            raise PreconditionError(
                "Pass style is undefined, set the pass style before accessing pass structure fields"
            )
        return self._section.group(name)

    @property
    def header_fields(self) -> FieldGroup:
        return self._group("headerFields")

    @property
    def primary_fields(self) -> FieldGroup:
        return self._group("primaryFields")

    @property
    def secondary_fields(self) -> FieldGroup:
        return self._group("secondaryFields")

    @property
    def auxiliary_fields(self) -> FieldGroup:
        return self._group("auxiliaryFields")

    @property
    def back_fields(self) -> FieldGroup:
        return self._group("backFields")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the style object, plus the top-level nfc key of store cards."""
        if self._section is None:
            return {}
        result: dict[str, Any] = {self._section.style.value: self._section.to_dict()}
        if isinstance(self._section, StoreCardSection) and not self._section.nfc.is_empty:
            result["nfc"] = self._section.nfc.to_dict()
        return result
