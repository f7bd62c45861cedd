"""Release index documents derived from an object tree."""

import bisect
import logging
from dataclasses import dataclass, field
from typing import Any

from s3_index.utils import SemVer, parse_semver

logger = logging.getLogger(__name__)


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop empty fields, the way the published index.json omits them."""
    return {k: v for k, v in values.items() if v not in (None, "", [], {})}


@dataclass
class IndexEntry:
    """One downloadable release artifact."""

    name: str = ""
    version: str = ""
    os: str = ""
    arch: str = ""
    filename: str = ""
    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "arch": self.arch,
                "filename": self.filename,
                "name": self.name,
                "os": self.os,
                "url": self.url,
                "version": self.version,
            }
        )


@dataclass
class VersionIndex:
    """All builds published for one version of a product.

    Attributes:
        name: Product name
        version: Version label, semver-normalized where possible
        builds: Artifacts found directly in the version directory
        shasums: Key of the checksums file, if one was published
    """

    name: str = ""
    version: str = ""
    builds: list[IndexEntry] = field(default_factory=list)
    shasums: str = ""

    def add_build(self, build: IndexEntry) -> None:
        self.builds.append(build)

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "builds": [b.to_dict() for b in self.builds],
                "name": self.name,
                "shasums": self.shasums,
                "version": self.version,
            }
        )


@dataclass
class ProductIndex:
    """Every version of one product, plus the latest one.

    Versions that are not semantic versions are kept in ``versions`` but never
    become ``latest_version``.
    """

    name: str
    versions: dict[str, VersionIndex] = field(default_factory=dict)
    latest_version: VersionIndex | None = None
    _sorted_versions: list[tuple[SemVer, str]] = field(
        default_factory=list, repr=False, compare=False
    )

    def add_version(self, version_index: VersionIndex) -> None:
        """Add a version and recompute the latest one."""
        self.versions[version_index.version] = version_index

        try:
            semver = parse_semver(version_index.version)
        except ValueError:
            logger.debug(
                f"{self.name}: '{version_index.version}' is not a semantic version, "
                "excluding it from latest version selection"
            )
            return

        self._sorted_versions = [
            (v, label) for v, label in self._sorted_versions
            if label != version_index.version
        ]
        bisect.insort(self._sorted_versions, (semver, version_index.version))
        self.latest_version = self.versions[self._sorted_versions[-1][1]]

    def sorted_versions(self) -> list[str]:
        """Semantic versions in ascending order."""
        return [label for _, label in self._sorted_versions]

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "versions": {k: v.to_dict() for k, v in sorted(self.versions.items())},
                "latest": self.latest_version.to_dict() if self.latest_version else None,
            }
        )


@dataclass
class ArchiveIndex:
    """Every product published under an archive root."""

    products: dict[str, ProductIndex] = field(default_factory=dict)

    def add_product(self, product: ProductIndex) -> None:
        self.products[product.name] = product

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {"product": {k: v.to_dict() for k, v in sorted(self.products.items())}}
        )
