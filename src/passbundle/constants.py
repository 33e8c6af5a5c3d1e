"""Constants for wallet pass bundles.

See: https://developer.apple.com/documentation/walletpasses/pass
"""

from enum import StrEnum


class PassStyle(StrEnum):
    """The mutually exclusive pass styles."""

    BOARDING_PASS = "boardingPass"
    COUPON = "coupon"
    EVENT_TICKET = "eventTicket"
    STORE_CARD = "storeCard"
    GENERIC = "generic"


class TransitType(StrEnum):
    """Transit types allowed on boarding passes."""

    AIR = "PKTransitTypeAir"
    BOAT = "PKTransitTypeBoat"
    BUS = "PKTransitTypeBus"
    GENERIC = "PKTransitTypeGeneric"
    TRAIN = "PKTransitTypeTrain"


PASS_STYLES: tuple[PassStyle, ...] = tuple(PassStyle)

# Short spellings ("Air") map to the platform value ("PKTransitTypeAir")
TRANSIT_TYPE_ALIASES: dict[str, TransitType] = {
    **{transit.value: transit for transit in TransitType},
    **{transit.value.removeprefix("PKTransitType"): transit for transit in TransitType},
}

STRUCTURE_FIELDS: tuple[str, ...] = (
    "headerFields",
    "primaryFields",
    "secondaryFields",
    "auxiliaryFields",
    "backFields",
)

REQUIRED_FIELDS: tuple[str, ...] = (
    "description",
    "organizationName",
    "passTypeIdentifier",
    "serialNumber",
    "teamIdentifier",
)

# Top-level attributes holding dates
DATE_FIELDS: tuple[str, ...] = ("relevantDate", "expirationDate")

PASS_FILENAME = "pass.json"
MANIFEST_FILENAME = "manifest.json"
SIGNATURE_FILENAME = "signature"

CONTENT_TYPE = "application/vnd.apple.pkpass"
FILE_EXTENSION = "pkpass"

MIN_AUTH_TOKEN_LENGTH = 16
NFC_MESSAGE_MAX_BYTES = 64
