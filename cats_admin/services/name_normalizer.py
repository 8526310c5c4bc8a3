"""
ENS Name Normalization
ENSIP-15 normalization plus the dashboard's .eth-only policy
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ens_normalize import ens_normalize, DisallowedSequence

ETH_SUFFIX = ".eth"


@dataclass(frozen=True)
class NameCheck:
    """Outcome of a strict name check"""
    raw: str
    normalized: Optional[str]
    reason: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.normalized is not None

    @property
    def is_canonical(self) -> bool:
        """True when the caller already supplied the normalized form"""
        return self.normalized is not None and self.reason is None


def _with_eth_suffix(name: str) -> Optional[str]:
    """Append .eth to a bare label; reject any other TLD"""
    if "." not in name:
        return name + ETH_SUFFIX
    if name.lower().endswith(ETH_SUFFIX):
        return name
    return None


def normalize_name(raw: Optional[str]) -> Optional[str]:
    """
    Normalize an ENS name per ENSIP-15

    Args:
        raw: Name as typed or stored

    Returns:
        Canonical name, or None if the name cannot be normalized
    """
    if not raw or not isinstance(raw, str):
        return None

    trimmed = raw.strip()
    if not trimmed:
        return None

    candidate = _with_eth_suffix(trimmed)
    if candidate is None:
        return None

    try:
        normalized = ens_normalize(candidate)
    except DisallowedSequence:
        return None

    # Labels like ".eth" normalize without error but are not names
    if not normalized or any(not label for label in normalized.split(".")):
        return None
    return normalized


def check_name(raw: str) -> NameCheck:
    """
    Strict check used by forms that require the canonical spelling

    Distinguishes "cannot be normalized" from "normalizes to a different
    string than given". A bare label counts as canonical when its .eth
    form is.
    """
    normalized = normalize_name(raw)
    if normalized is None:
        return NameCheck(raw=raw, normalized=None, reason="invalid ENS name")

    submitted = _with_eth_suffix(raw.strip())
    if normalized == submitted:
        return NameCheck(raw=raw, normalized=normalized)
    if normalized == submitted.lower():
        return NameCheck(raw=raw, normalized=normalized, reason=f"must be lowercase: {normalized}")
    return NameCheck(raw=raw, normalized=normalized, reason=f"should be: {normalized}")


def safe_normalize_name(raw: str) -> str:
    """
    Normalize for display or lookup, never fails

    Falls back to trim + lowercase so names that slipped into a category
    before normalization rules changed can still be found. Not for writes.
    """
    return normalize_name(raw) or (raw or "").strip().lower()


def parse_name_list(text: str) -> Tuple[List[str], List[str]]:
    """
    Parse newline separated names from a textarea

    Returns:
        Tuple of (normalized valid names, invalid raw lines)
    """
    valid: List[str] = []
    invalid: List[str] = []

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        normalized = normalize_name(line)
        if normalized:
            valid.append(normalized)
        else:
            invalid.append(line)

    return valid, invalid
