"""Semantic version parsing and comparison for release directories."""

import re
from dataclasses import dataclass
from functools import total_ordering

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<metadata>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@total_ordering
@dataclass(frozen=True, eq=False)
class SemVer:
    """A parsed semantic version.

    Ordering follows semantic version precedence: build metadata is ignored,
    and a pre-release sorts below the corresponding release.
    """

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    metadata: str = ""

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.metadata:
            version += f"+{self.metadata}"
        return version

    def _precedence(self) -> tuple:
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())

        identifiers = []
        for part in self.prerelease.split("."):
            if part.isdigit():
                identifiers.append((0, int(part), ""))
            else:
                identifiers.append((1, 0, part))
        return (self.major, self.minor, self.patch, 0, tuple(identifiers))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence() == other._precedence()

    def __lt__(self, other: "SemVer") -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __hash__(self) -> int:
        return hash(self._precedence())


def normalize_version(version: str) -> str:
    """Expand a loose version label into a full ``major.minor.patch`` string.

    A leading ``v``/``V`` is removed, a bare major gets ``.0.0`` and a
    ``major.minor`` gets ``.0``.

    Examples:
        >>> normalize_version("v2.3")
        '2.3.0'
        >>> normalize_version("1")
        '1.0.0'
    """
    if version[:1] in ("v", "V"):
        version = version[1:]

    if version.count(".") == 0:
        version += ".0.0"
    elif version.count(".") == 1:
        version += ".0"

    return version


def parse_semver(version: str) -> SemVer:
    """Parse a version label into a SemVer after normalizing it.

    Args:
        version: Version label, e.g. "1.2.3", "v2", "1.0", "1.2.3-rc.1+build.5"

    Returns:
        Parsed SemVer

    Raises:
        ValueError: If the label is empty or not a semantic version
    """
    if not version or not isinstance(version, str):
        raise ValueError(f"invalid semantic version: {version!r}")

    match = _SEMVER_RE.match(normalize_version(version))
    if match is None:
        raise ValueError(f"invalid semantic version: {version!r}")

    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=match.group("prerelease") or "",
        metadata=match.group("metadata") or "",
    )


def is_version_label(label: str) -> bool:
    """Return True if ``label`` parses as a semantic version."""
    try:
        parse_semver(label)
    except ValueError:
        return False
    return True


def canonical_version(version: str) -> str:
    """Return the canonical semver string, or ``version`` unchanged if it
    does not parse."""
    try:
        return str(parse_semver(version))
    except ValueError:
        return version
