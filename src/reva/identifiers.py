"""
Identifier generation for entities minted by the tool dispatcher.

Identifiers are canonical, lowercase UUID v4 strings. They end up as keys in
client-side records, so a malformed value must never leave this module: every
candidate is validated, and a candidate that fails validation moves the
generator on to its next tier instead of being returned.
"""

import random
import re
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from . import observers
from .errors import IdentifierGenerationFailure

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
HYPHEN_POSITIONS = (8, 13, 18, 23)
GROUP_LENGTHS = (8, 4, 4, 4, 12)
HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def is_valid(value: Any) -> bool:
    """Returns True if ``value`` is a well-formed UUID v4 string."""
    return isinstance(value, str) and UUID_PATTERN.match(value) is not None


@dataclass
class FormatReport:
    """Detailed outcome of checking a value against the UUID v4 format."""

    value: Any
    is_valid: bool = False
    errors: List[str] = field(default_factory=list)
    format: Dict[str, str] = field(default_factory=dict)


def validate_format(value: Any) -> FormatReport:
    """Checks ``value`` rule by rule and reports the first rule it breaks.

    On success the report's ``format`` holds the decomposed UUID fields.
    """
    report = FormatReport(value=value)
    if not isinstance(value, str):
        report.errors.append(f"Invalid type: {type(value).__name__} (expected str)")
        return report
    if len(value) != 36:
        report.errors.append(f"Invalid length: {len(value)} (expected 36)")
        return report
    for position in HYPHEN_POSITIONS:
        if value[position] != "-":
            report.errors.append(f"Missing hyphen at position {position}")
            return report

    parts = value.split("-")
    if len(parts) != len(GROUP_LENGTHS):
        report.errors.append(f"Invalid number of parts: {len(parts)} (expected 5)")
        return report
    for index, (part, expected) in enumerate(zip(parts, GROUP_LENGTHS), start=1):
        if len(part) != expected:
            report.errors.append(
                f"Part {index} has invalid length: {len(part)} (expected {expected})"
            )
            return report
        if not set(part) <= HEX_DIGITS:
            report.errors.append(f"Part {index} contains non-hex characters: {part}")
            return report

    version = parts[2][0]
    if version != "4":
        report.errors.append(f"Invalid version: {version} (expected 4)")
        return report
    variant = parts[3][0].lower()
    if variant not in "89ab":
        report.errors.append(f"Invalid variant: {variant} (expected 8, 9, a, or b)")
        return report

    report.is_valid = True
    report.format = {
        "time_low": parts[0],
        "time_mid": parts[1],
        "time_hi_and_version": parts[2],
        "clock_seq_hi_and_reserved": parts[3],
        "node": parts[4],
        "version": version,
        "variant": variant,
    }
    return report


def format_uuid4(raw: bytes) -> str:
    """Forces the version and variant bits of 16 random bytes and renders them."""
    if len(raw) != 16:
        raise ValueError(f"Expected 16 random bytes, got {len(raw)}")
    data = bytearray(raw)
    data[6] = (data[6] & 0x0F) | 0x40
    data[8] = (data[8] & 0x3F) | 0x80
    hex_digits = data.hex()
    return "-".join(
        [
            hex_digits[0:8],
            hex_digits[8:12],
            hex_digits[12:16],
            hex_digits[16:20],
            hex_digits[20:32],
        ]
    )


def uuid4_tier() -> str:
    return str(uuid.uuid4())


def secure_bytes_tier() -> str:
    return format_uuid4(secrets.token_bytes(16))


def pseudo_random_tier() -> str:
    return format_uuid4(random.getrandbits(128).to_bytes(16, "big"))


Tier = Tuple[str, Callable[[], str]]

DEFAULT_TIERS: Tuple[Tier, ...] = (
    ("uuid4", uuid4_tier),
    ("secure_bytes", secure_bytes_tier),
    ("pseudo_random", pseudo_random_tier),
)


class IdentifierGenerator:
    """Generates identifiers through an ordered chain of fallback tiers.

    Parameters
    ----------
    tiers : sequence of (name, callable), optional
        Candidate strategies, tried in order. Defaults to the platform UUID
        generator, then manual construction from the OS CSPRNG, then manual
        construction from the non-cryptographic ``random`` module.
    observer : observers.Observer, optional
        Receives ``identifier.fallback`` for every failed tier and
        ``identifier.failure`` when the chain is exhausted.
    """

    def __init__(
        self,
        tiers: Optional[Sequence[Tier]] = None,
        observer: Optional[observers.Observer] = None,
    ):
        self.tiers = list(tiers) if tiers is not None else list(DEFAULT_TIERS)
        self.observer = observer or observers.NoObserver()

    def generate(self) -> str:
        """Returns a validated identifier.

        Raises
        ------
        IdentifierGenerationFailure
            If no tier produced a valid identifier.
        """
        errors = []
        for name, tier in self.tiers:
            try:
                candidate = tier()
            except Exception as e:
                errors.append(f"{name}: {e}")
                self.observer.record("identifier.fallback", tier=name, error=str(e))
                continue
            if is_valid(candidate):
                return candidate.lower()
            errors.append(f"{name}: produced invalid identifier {candidate!r}")
            self.observer.record(
                "identifier.fallback", tier=name, error="invalid format"
            )

        failure = IdentifierGenerationFailure(errors)
        self.observer.record(
            "identifier.failure", errors=failure.errors, timestamp=failure.timestamp
        )
        raise failure


_default = IdentifierGenerator()


def generate() -> str:
    """Returns a validated identifier from the shared default generator."""
    return _default.generate()
