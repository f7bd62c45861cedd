"""Configuration management for release index extraction."""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from s3_index.exclusions import (
    Exclusions,
    default_exclusions,
    has_key,
    has_prefix,
    has_suffix,
)
from s3_index.release_info import (
    DEFAULT_KEY_PATTERN,
    EXTRACTION_KEY,
    EXTRACTION_TAGS,
    IndexConfig,
    KeyPatternExtractor,
    KeyPatternExtractors,
    TagExtractor,
)


@dataclass
class TagNames:
    """Tag keys holding release metadata.

    Attributes:
        product: Tag holding the product name
        version: Tag holding the version; objects without it are not indexed
        os: Tag holding the operating system
        architecture: Tag holding the CPU architecture
    """

    product: str = "Dioad/Project"
    version: str = "Dioad/Version"
    os: str = "Dioad/OS"
    architecture: str = "Dioad/Architecture"


@dataclass
class ExclusionConfig:
    """Paths kept out of the object tree.

    Attributes:
        keys: Exact keys or directory names to exclude
        prefixes: Path prefixes to exclude
        suffixes: Path suffixes to exclude
    """

    keys: list[str] = field(default_factory=list)
    prefixes: list[str] = field(default_factory=list)
    suffixes: list[str] = field(default_factory=list)

    def to_exclusions(self) -> Exclusions:
        exclusions = Exclusions()
        exclusions.extend(has_key(k) for k in self.keys)
        exclusions.extend(has_prefix(p) for p in self.prefixes)
        exclusions.extend(has_suffix(s) for s in self.suffixes)
        return exclusions


@dataclass
class IndexConfigFile:
    """Index configuration as loaded from YAML.

    Attributes:
        name: Configuration name, taken from the file name
        extraction: "key" to parse release details from keys, "tags" to read tags
        key_patterns: Named-group regular expressions tried in order
        tags: Tag keys used when extraction is "tags"
        exclusions: Exclusions for the object tree, or None for the defaults
    """

    name: str
    extraction: str = EXTRACTION_KEY
    key_patterns: list[str] = field(default_factory=lambda: [DEFAULT_KEY_PATTERN])
    tags: TagNames = field(default_factory=TagNames)
    exclusions: ExclusionConfig | None = None

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "IndexConfigFile":
        """Load configuration from a YAML file.

        Args:
            yaml_path: Path to the YAML configuration file

        Returns:
            IndexConfigFile populated from the YAML file

        Raises:
            FileNotFoundError: If the YAML file does not exist
            ValueError: If the extraction strategy is unknown
        """
        yaml_path = Path(yaml_path)
        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        extraction = data.get("extraction", EXTRACTION_KEY)
        if extraction not in (EXTRACTION_KEY, EXTRACTION_TAGS):
            raise ValueError(
                f"Unknown extraction strategy '{extraction}' in {yaml_path}"
            )

        tags = TagNames(**data.get("tags", {}))

        exclusions = None
        if "exclusions" in data:
            exclusion_data = data["exclusions"] or {}
            exclusions = ExclusionConfig(
                keys=exclusion_data.get("keys", []),
                prefixes=exclusion_data.get("prefixes", []),
                suffixes=exclusion_data.get("suffixes", []),
            )

        return cls(
            name=yaml_path.stem,
            extraction=extraction,
            key_patterns=data.get("key_patterns") or [DEFAULT_KEY_PATTERN],
            tags=tags,
            exclusions=exclusions,
        )

    def to_index_config(self) -> IndexConfig:
        """Build the IndexConfig used to extract release details."""
        if self.extraction == EXTRACTION_TAGS:
            extractor = TagExtractor(
                product_tag=self.tags.product,
                version_tag=self.tags.version,
                os_tag=self.tags.os,
                architecture_tag=self.tags.architecture,
            )
        else:
            extractor = KeyPatternExtractors(
                [KeyPatternExtractor(pattern) for pattern in self.key_patterns]
            )
        return IndexConfig(extractor=extractor)

    def to_exclusions(self) -> Exclusions:
        """Build the tree exclusions, falling back to the defaults."""
        if self.exclusions is None:
            return default_exclusions()
        return self.exclusions.to_exclusions()


class ConfigManager:
    """Manages index configuration files.

    Attributes:
        config_dir: Path to the directory containing index YAML configs
    """

    def __init__(self, config_dir: str = "config/indexes") -> None:
        """Initialize ConfigManager.

        Args:
            config_dir: Path to directory containing index YAML configs
        """
        self.config_dir = Path(config_dir)

    def load_all_configs(self) -> list[IndexConfigFile]:
        """Load all index configurations from the config directory."""
        return [
            IndexConfigFile.from_yaml(yaml_file)
            for yaml_file in sorted(self.config_dir.glob("*.yaml"))
        ]

    def get_config(self, name: str) -> IndexConfigFile:
        """Get the configuration called ``name``.

        Raises:
            FileNotFoundError: If no config file exists with that name
        """
        return IndexConfigFile.from_yaml(self.config_dir / f"{name}.yaml")
