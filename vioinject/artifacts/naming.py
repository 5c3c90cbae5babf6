"""Derive the output image name from the two input artifact names.

Everything here is a pure function of the file names; the same inputs always
yield the same name.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from vioinject.core.structlog_logger import get_struct_logger


logger = get_struct_logger(__name__)

MAX_LABEL_LENGTH = 32
OUTPUT_EXTENSION = ".iso"
VERSION_PLACEHOLDER = "UNK"
_KNOWN_EXTENSIONS = (".iso", ".img", ".exe")

LANGUAGE_ABBREVIATIONS: dict[str, str] = {
    "english": "Eng",
    "englishinternational": "EnI",
    "english-gb": "EnG",
    "german": "Ger",
    "french": "Fre",
    "frenchcanadian": "FrC",
    "spanish": "Spa",
    "spanish-mexico": "SpM",
    "italian": "Ita",
    "portuguese": "Por",
    "brazilianportuguese": "PtB",
    "dutch": "Dut",
    "polish": "Pol",
    "russian": "Rus",
    "ukrainian": "Ukr",
    "japanese": "Jpn",
    "korean": "Kor",
    "chinesesimplified": "ChS",
    "chinesetraditional": "ChT",
    "swedish": "Swe",
    "norwegian": "Nor",
    "danish": "Dan",
    "finnish": "Fin",
    "czech": "Cze",
    "turkish": "Tur",
}

_PRIMARY_CONVENTION = re.compile(
    r"^(?P<product>[A-Za-z][A-Za-z0-9]*)"
    r"_(?P<release>[0-9][0-9A-Za-z]*)"
    r"_(?P<language>[A-Za-z]+(?:-[A-Za-z]+)?)"
    r"_(?P<arch>x64|x86|amd64|arm64)$"
)


@dataclass(frozen=True)
class PrimaryNameFields:
    product: str
    release: str
    language: str
    arch: str


VersionMatcher = Callable[[str], str | None]


def _match_virtio_release(stem: str) -> str | None:
    match = re.fullmatch(r"virtio-win-\d+\.\d+\.(\d+)(?:-\d+)?", stem, re.IGNORECASE)
    return match.group(1) if match else None


def _match_patch_version(stem: str) -> str | None:
    match = re.search(r"\d+\.\d+\.(\d+)", stem)
    return match.group(1) if match else None


# First match wins; most specific first
VERSION_TOKEN_MATCHERS: tuple[VersionMatcher, ...] = (
    _match_virtio_release,
    _match_patch_version,
)


def strip_extension(name: str) -> str:
    """Drop a known image/executable extension.

    ``Path.stem`` is not usable here because dotted versions look like
    extensions (``virtio-win-0.1.285`` would lose ``.285``).
    """
    lowered = name.lower()
    for extension in _KNOWN_EXTENSIONS:
        if lowered.endswith(extension):
            return name[: -len(extension)]
    return name


def extract_version_token(driver_name: str) -> str:
    stem = strip_extension(driver_name)
    for matcher in VERSION_TOKEN_MATCHERS:
        token = matcher(stem)
        if token:
            return token
    return VERSION_PLACEHOLDER


def parse_primary_name(primary_name: str) -> PrimaryNameFields | None:
    """Split a ``Product_Release_Language_Arch`` name into its fields."""
    match = _PRIMARY_CONVENTION.match(strip_extension(primary_name))
    if not match:
        return None
    return PrimaryNameFields(**match.groupdict())


def abbreviate_language(
    language: str, extra_abbreviations: Mapping[str, str] | None = None
) -> str:
    """Abbreviate a language tag, truncating unknown ones to three characters."""
    key = language.lower()
    if extra_abbreviations:
        for name, abbreviation in extra_abbreviations.items():
            if name.lower() == key:
                return abbreviation
    if key in LANGUAGE_ABBREVIATIONS:
        return LANGUAGE_ABBREVIATIONS[key]
    return language[:3]


def compute_volume_label(
    primary_name: str,
    driver_name: str,
    extra_abbreviations: Mapping[str, str] | None = None,
) -> str:
    """Compute the output name without extension, at most 32 characters."""
    token = extract_version_token(driver_name)
    fields = parse_primary_name(primary_name)

    if fields is not None:
        language = abbreviate_language(fields.language, extra_abbreviations)
        label = f"{fields.product}_{fields.release}_{language}_{fields.arch}_VIO{token}"
    else:
        label = f"{strip_extension(primary_name)}_VIO{token}"

    if len(label) > MAX_LABEL_LENGTH:
        truncated = label[:MAX_LABEL_LENGTH]
        logger.warning(
            "output_name_truncated",
            composed=label,
            truncated=truncated,
            limit=MAX_LABEL_LENGTH,
        )
        label = truncated

    return label


def compute_output_name(
    primary_name: str,
    driver_name: str,
    extra_abbreviations: Mapping[str, str] | None = None,
) -> str:
    """Compute the output file name, e.g. ``MicroWin11_25H2_Eng_x64_VIO285.iso``."""
    return (
        compute_volume_label(primary_name, driver_name, extra_abbreviations)
        + OUTPUT_EXTENSION
    )
