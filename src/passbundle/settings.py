"""Signing configuration.

Values are read from the environment (or a .env / settings.ini file) once at
startup with python-decouple, then passed explicitly to whatever produces
bundles.

Environment variables:
    PASS_SIGNING_STRATEGY: "local" (default) or "remote".
    PASS_SIGN_URL: Endpoint of the remote signing service.
    PASS_SIGN_HEADERS: Extra request headers, "key=value;key2=value2".
    PASS_SIGN_TIMEOUT: Remote signing timeout in seconds.
    PASS_CERT_PATH: Pass Type ID certificate (PEM) for local signing.
    PASS_KEY_PATH: Private key (PEM) for local signing.
    PASS_KEY_PASSWORD: Password of the private key, if encrypted.
    PASS_WWDR_CERT_PATH: Apple WWDR intermediate certificate (PEM).
"""

from dataclasses import dataclass, field
from enum import StrEnum

from decouple import config

DEFAULT_SIGN_URL = "https://localhost:3000/api/sign-manifest"
DEFAULT_SIGN_TIMEOUT = 30.0


class SigningStrategy(StrEnum):
    LOCAL = "local"
    REMOTE = "remote"


def parse_headers(raw: str) -> dict[str, str]:
    """Parse semicolon-separated key=value pairs into a header mapping.

    Blank items are skipped; the value is everything after the first "=".
    """
    headers: dict[str, str] = {}
    for item in raw.split(";"):
        item = item.strip()
        if not item:
            continue
        key, _, value = item.partition("=")
        headers[key.strip()] = value.strip()
    return headers


@dataclass(frozen=True)
class SigningConfig:
    """How manifests are signed."""

    strategy: SigningStrategy = SigningStrategy.LOCAL
    sign_url: str = DEFAULT_SIGN_URL
    sign_headers: dict[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_SIGN_TIMEOUT
    cert_path: str = ""
    key_path: str = ""
    key_password: str = ""
    wwdr_cert_path: str = ""

    @classmethod
    def from_env(cls) -> "SigningConfig":
        """Build the configuration from environment variables."""
        return cls(
            strategy=config("PASS_SIGNING_STRATEGY", default=SigningStrategy.LOCAL.value, cast=SigningStrategy),
            sign_url=config("PASS_SIGN_URL", default=DEFAULT_SIGN_URL),
            sign_headers=config("PASS_SIGN_HEADERS", default="", cast=parse_headers),
            timeout=config("PASS_SIGN_TIMEOUT", default=DEFAULT_SIGN_TIMEOUT, cast=float),
            cert_path=config("PASS_CERT_PATH", default=""),
            key_path=config("PASS_KEY_PATH", default=""),
            key_password=config("PASS_KEY_PASSWORD", default=""),
            wwdr_cert_path=config("PASS_WWDR_CERT_PATH", default=""),
        )
