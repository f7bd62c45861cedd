"""Release details extraction and release index construction for object trees."""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from s3_index.models import S3Object
from s3_index.release_index import ArchiveIndex, IndexEntry, ProductIndex, VersionIndex
from s3_index.utils import canonical_version, is_version_label

if TYPE_CHECKING:
    from s3_index.object_tree import ObjectTree

logger = logging.getLogger(__name__)

DEFAULT_KEY_PATTERN = (
    r"(?P<Prefix>.*?/)?(?P<Product>[^/]+)/(?P<Version>[^/]+)/(?P<PackageName>[^_]+)"
    r"(_|_(?P<Extra>.*?)_)(?P<OS>[^_\d]+)_(?P<Arch>[^\.]+)\.(?P<ArchiveType>[^/]+)$"
)

EXTRACTION_KEY = "key"
EXTRACTION_TAGS = "tags"

BUILD_DIRECTORY = "build"
SHASUMS_SUFFIX = "_SHA256SUMS"


class ReleaseDetailsExtractor(Protocol):
    def extract_release_details(self, obj: S3Object) -> dict[str, str] | None: ...


class KeyPatternExtractor:
    """Extracts release details from an object key with a named-group regex."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._regex = re.compile(pattern)

    def extract_release_details(self, obj: S3Object) -> dict[str, str] | None:
        """Return the named groups matched in ``obj.key``, or None.

        The Version group is normalized to its canonical semantic version when
        it parses as one and kept verbatim otherwise.
        """
        match = self._regex.search(obj.key)
        if match is None:
            return None

        details = {name: value or "" for name, value in match.groupdict().items()}
        if details.get("Version"):
            details["Version"] = canonical_version(details["Version"])
        return details


class KeyPatternExtractors(list[KeyPatternExtractor]):
    """Tries each pattern in order and uses the first that matches."""

    def extract_release_details(self, obj: S3Object) -> dict[str, str] | None:
        for extractor in self:
            details = extractor.extract_release_details(obj)
            if details is not None:
                return details
        return None


@dataclass
class TagExtractor:
    """Reads release details from object tags.

    Objects without the version tag carry no release details.
    """

    product_tag: str
    version_tag: str
    os_tag: str
    architecture_tag: str

    def extract_release_details(self, obj: S3Object) -> dict[str, str] | None:
        version = obj.tags.get(self.version_tag)
        if not version:
            return None

        return {
            "Product": obj.tags.get(self.product_tag, ""),
            "Version": canonical_version(version),
            "OS": obj.tags.get(self.os_tag, ""),
            "Arch": obj.tags.get(self.architecture_tag, ""),
        }


def _default_extractor() -> KeyPatternExtractors:
    return KeyPatternExtractors([KeyPatternExtractor(DEFAULT_KEY_PATTERN)])


@dataclass
class IndexConfig:
    """How release details are derived for index entries."""

    extractor: ReleaseDetailsExtractor = field(default_factory=_default_extractor)

    @property
    def uses_tags(self) -> bool:
        return isinstance(self.extractor, TagExtractor)


def new_index_entry(config: IndexConfig, obj: S3Object) -> IndexEntry | None:
    """Build the index entry for ``obj``, or None if it is not a release artifact."""
    details = config.extractor.extract_release_details(obj)
    if not details or not details.get("Version"):
        logger.debug(f"No release details for {obj.key}")
        return None

    return IndexEntry(
        name=details.get("Product", ""),
        version=details["Version"],
        os=details.get("OS", ""),
        arch=details.get("Arch", ""),
        filename=obj.base_name,
        url=posixpath.join("/", obj.key),
    )


def is_version_tree(tree: "ObjectTree") -> bool:
    return tree.dir_name == BUILD_DIRECTORY or is_version_label(tree.dir_name)


def is_product_tree(tree: "ObjectTree") -> bool:
    return any(is_version_tree(child) for child in tree.children.values())


def is_archive_tree(tree: "ObjectTree") -> bool:
    return any(is_product_tree(child) for child in tree.children.values())


def new_version_index(config: IndexConfig, tree: "ObjectTree") -> VersionIndex:
    version_index = VersionIndex(
        name=tree.parent_name,
        version=canonical_version(tree.dir_name),
    )

    for obj in sorted(tree.objects, key=lambda o: o.key):
        entry = new_index_entry(config, obj)
        if entry is not None:
            version_index.add_build(entry)

        if obj.key.endswith(SHASUMS_SUFFIX):
            version_index.shasums = obj.key

    return version_index


def new_version_index_for_object_tree(
    config: IndexConfig, tree: "ObjectTree"
) -> VersionIndex | None:
    if not is_version_tree(tree):
        return None
    return new_version_index(config, tree)


def new_product_index_for_object_tree(
    config: IndexConfig, tree: "ObjectTree"
) -> ProductIndex | None:
    if not is_product_tree(tree):
        return None

    product_index = ProductIndex(name=tree.dir_name)
    for child in tree.children.values():
        if is_version_tree(child):
            product_index.add_version(new_version_index(config, child))

    return product_index


def new_archive_index_for_object_tree(
    config: IndexConfig, tree: "ObjectTree"
) -> ArchiveIndex | None:
    if not is_archive_tree(tree):
        return None

    archive_index = ArchiveIndex()
    for child in tree.children.values():
        product_index = new_product_index_for_object_tree(config, child)
        if product_index is not None:
            archive_index.add_product(product_index)

    return archive_index


def index_for_object_tree(
    config: IndexConfig, tree: "ObjectTree"
) -> ArchiveIndex | ProductIndex | VersionIndex | None:
    """Build the release index matching the shape of ``tree``.

    The deepest classification wins: version takes priority over archive, and
    archive over product. A node matching more than one shape is logged as
    ambiguous.
    """
    shapes = [
        name
        for name, matches in (
            ("version", is_version_tree(tree)),
            ("archive", is_archive_tree(tree)),
            ("product", is_product_tree(tree)),
        )
        if matches
    ]
    if not shapes:
        return None

    if len(shapes) > 1:
        logger.warning(
            f"Ambiguous release layout at {tree.full_path}: matches "
            f"{', '.join(shapes)}; building {shapes[0]} index",
            extra={"path": tree.full_path, "shapes": shapes},
        )

    if shapes[0] == "version":
        return new_version_index_for_object_tree(config, tree)
    if shapes[0] == "archive":
        return new_archive_index_for_object_tree(config, tree)
    return new_product_index_for_object_tree(config, tree)
