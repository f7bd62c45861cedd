"""Configuration and logging setup for the S3 index generator."""

import logging
import os
import sys
from dataclasses import dataclass


def setup_logging(level: str | None = None) -> None:
    """Set up structured logging compatible with CloudWatch.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to INFO.
    """
    log_level = level or os.getenv(ENV_LOG_LEVEL, "INFO")

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Set boto3 logging to WARNING to reduce noise
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_env_var(name: str, default: str | None = None, required: bool = False) -> str:
    """Get environment variable with optional default and validation.

    Args:
        name: Environment variable name
        default: Default value if not set
        required: Whether the variable is required

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is not set
    """
    value = os.getenv(name, default)

    if required and not value:
        raise ValueError(f"Required environment variable {name} is not set")

    return value or ""


def _get_int_env_var(name: str, default: int | None) -> int | None:
    value = get_env_var(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}") from e


# Environment variable names
ENV_BUCKET = "BUCKET"
ENV_OBJECT_PREFIX = "OBJECT_PREFIX"
ENV_INDEX_TYPE = "INDEX_TYPE"
ENV_INDEX_TEMPLATE = "INDEX_TEMPLATE"
ENV_SSE = "SSE"
ENV_OUTPUT_BUCKET = "OUTPUT_BUCKET"
ENV_OUTPUT_PREFIX = "OUTPUT_PREFIX"
ENV_LOCAL_OUTPUT_DIRECTORY = "LOCAL_OUTPUT_DIRECTORY"
ENV_INDEX_CONFIG_FILE = "INDEX_CONFIG_FILE"
ENV_STATIC_DIRECTORY = "STATIC_DIRECTORY"
ENV_TAG_CONCURRENCY = "TAG_CONCURRENCY"
ENV_RENDER_CONCURRENCY = "RENDER_CONCURRENCY"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_AWS_REGION = "AWS_REGION"

SINGLE_PAGE = "singlepage"
MULTI_PAGE = "multipage"
DEFAULT_RENDER_CONCURRENCY = 10


@dataclass
class IndexSettings:
    """Runtime settings for one index generation run."""

    bucket: str
    object_prefix: str = ""
    index_type: str = MULTI_PAGE
    index_template: str = ""
    server_side_encryption: str = ""
    output_bucket: str = ""
    output_prefix: str = ""
    local_output_directory: str = ""
    index_config_file: str = ""
    static_directory: str = ""
    tag_concurrency: int | None = None
    render_concurrency: int = DEFAULT_RENDER_CONCURRENCY
    region: str = "us-east-1"

    def __post_init__(self) -> None:
        if self.index_type not in (MULTI_PAGE, SINGLE_PAGE):
            raise ValueError(
                f"expected {MULTI_PAGE} or {SINGLE_PAGE}, found {self.index_type}"
            )
        if not self.index_template:
            self.index_template = f"{self.index_type}.index.html"
        if not self.output_bucket:
            self.output_bucket = self.bucket

    @property
    def recursive(self) -> bool:
        return self.index_type != SINGLE_PAGE

    @classmethod
    def from_environment(cls, bucket: str | None = None) -> "IndexSettings":
        """Build settings from environment variables.

        Args:
            bucket: Overrides the BUCKET environment variable

        Raises:
            ValueError: If BUCKET is missing or a value is invalid
        """
        return cls(
            bucket=bucket or get_env_var(ENV_BUCKET, required=True),
            object_prefix=get_env_var(ENV_OBJECT_PREFIX),
            index_type=get_env_var(ENV_INDEX_TYPE, MULTI_PAGE),
            index_template=get_env_var(ENV_INDEX_TEMPLATE),
            server_side_encryption=get_env_var(ENV_SSE),
            output_bucket=get_env_var(ENV_OUTPUT_BUCKET),
            output_prefix=get_env_var(ENV_OUTPUT_PREFIX),
            local_output_directory=get_env_var(ENV_LOCAL_OUTPUT_DIRECTORY),
            index_config_file=get_env_var(ENV_INDEX_CONFIG_FILE),
            static_directory=get_env_var(ENV_STATIC_DIRECTORY),
            tag_concurrency=_get_int_env_var(ENV_TAG_CONCURRENCY, None),
            render_concurrency=_get_int_env_var(
                ENV_RENDER_CONCURRENCY, DEFAULT_RENDER_CONCURRENCY
            ),
            region=get_env_var(ENV_AWS_REGION, "us-east-1"),
        )
