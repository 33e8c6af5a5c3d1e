"""Pass templates.

A template carries what many passes share: the style, default attributes
(organizationName, passTypeIdentifier, colors, ...), images, localizations
and the signing configuration. Individual passes are created from it.
"""

import copy
import json
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog

from passbundle.archive import read_archive
from passbundle.bundle import PassBundle
from passbundle.constants import MANIFEST_FILENAME, PASS_FILENAME, PASS_STYLES, SIGNATURE_FILENAME, PassStyle
from passbundle.exceptions import InvalidArgumentError, MissingFieldError
from passbundle.images import IMAGE_FILENAME_RE, PassImages
from passbundle.localizations import PASS_STRINGS_FILENAME, Localizations
from passbundle.settings import SigningConfig

logger = structlog.get_logger(__name__)

STRINGS_FILENAME_RE = re.compile(r"^(?P<lang>[\w-]+)\.lproj/" + re.escape(PASS_STRINGS_FILENAME) + "$")


class PassTemplate:
    """Shared defaults for a family of passes."""

    def __init__(
        self,
        style: PassStyle | str,
        fields: Mapping[str, Any] | None = None,
        images: PassImages | None = None,
        localizations: Localizations | None = None,
        config: SigningConfig | None = None,
    ) -> None:
        """Initialize the template.

        Args:
            style: The style of passes created from this template.
            fields: Default descriptor fields (pass.json form).
            images: Images shared by all passes.
            localizations: Localized strings shared by all passes.
            config: Signing configuration handed to created passes.

        Raises:
            InvalidArgumentError: If the style is unknown.
        """
        try:
            self.style = PassStyle(style)
        except ValueError:
            raise InvalidArgumentError(f'Invalid pass style "{style}"')
        self.fields: dict[str, Any] = dict(fields or {})
        self.images = images if images is not None else PassImages()
        self.localizations = localizations if localizations is not None else Localizations()
        self.config = config

    def create_pass(self, fields: Mapping[str, Any] | None = None) -> PassBundle:
        """Create a pass from this template.

        Args:
            fields: Pass specific fields, overriding the template defaults.

        Returns:
            A new PassBundle with copies of the template's images and
            localizations.
        """
        overrides = copy.deepcopy(dict(fields or {}))
        merged = copy.deepcopy(self.fields)
        if any(style.value in overrides for style in PassStyle):
            # The pass brings its own style object; drop the template's
            for style in PassStyle:
                merged.pop(style.value, None)
        merged.update(overrides)
        if not any(style.value in merged for style in PassStyle):
            merged[self.style.value] = {}

        return PassBundle(
            merged,
            images=self.images.copy(),
            localizations=self.localizations.copy(),
            config=self.config,
        )

    @classmethod
    def from_archive(cls, data: bytes, config: SigningConfig | None = None) -> "PassTemplate":
        """Load a template from an existing .pkpass archive.

        The manifest and signature are ignored; the pass gets signed again
        when produced.
        """
        return cls._from_files(read_archive(data), config)

    @classmethod
    def from_directory(cls, path: str | Path, config: SigningConfig | None = None) -> "PassTemplate":
        """Load a template from a .pass folder laid out like a bundle."""
        root = Path(path)
        files = (
            (file_path.relative_to(root).as_posix(), file_path.read_bytes())
            for file_path in sorted(root.rglob("*"))
            if file_path.is_file()
        )
        return cls._from_files(files, config)

    @classmethod
    def _from_files(cls, files: Iterable[tuple[str, bytes]], config: SigningConfig | None) -> "PassTemplate":
        fields: dict[str, Any] | None = None
        images = PassImages()
        localizations = Localizations()

        for path, content in files:
            if path in (MANIFEST_FILENAME, SIGNATURE_FILENAME):
                continue
            if path == PASS_FILENAME:
                fields = json.loads(content)
                continue
            if match := IMAGE_FILENAME_RE.match(path):
                images.add(
                    match["type"],
                    content,
                    density=match["density"] or "1x",
                    locale=match["locale"],
                )
                continue
            if match := STRINGS_FILENAME_RE.match(path):
                localizations.add_file(match["lang"], content)
                continue
            logger.warning("template_file_skipped", path=path)

        if fields is None:
            raise MissingFieldError(PASS_FILENAME)

        styles = [PassStyle(key) for key in fields if key in PASS_STYLES]
        if not styles:
            raise InvalidArgumentError("Template pass.json has no pass style")

        return cls(styles[-1], fields=fields, images=images, localizations=localizations, config=config)
