"""Builds an object tree from a bucket listing and writes its index files."""

import logging
import threading

from s3_index.config import IndexSettings
from s3_index.config_manager import IndexConfigFile
from s3_index.exclusions import PathFilter, default_exclusions
from s3_index.html_templates import TemplateSet, default_templates
from s3_index.object_source import ObjectSource
from s3_index.object_tree import (
    ObjectTree,
    ObjectTreeConfig,
    new_object_tree_from_lister,
    new_object_tree_with_objects,
)
from s3_index.output_fs import LocalOutputFS, OutputFS, S3OutputFS, copy_static_files
from s3_index.release_info import IndexConfig
from s3_index.renderers import html_renderer, json_renderer
from s3_index.s3_bucket import S3Bucket
from s3_index.tree_renderer import (
    DEFAULT_MAX_CONCURRENT_RENDERS,
    IndexRenderers,
    render_object_tree,
)

logger = logging.getLogger(__name__)


def create_object_tree(
    lister: ObjectSource,
    object_prefix: str,
    exclusions: PathFilter | None = None,
    with_tags: bool = False,
    cancel_event: threading.Event | None = None,
) -> ObjectTree:
    """List ``object_prefix`` and build the tree, stripping the prefix.

    Args:
        lister: Source of objects
        object_prefix: Listing prefix, removed from the top of the tree
        exclusions: Tree filter. Defaults to default_exclusions().
        with_tags: Fetch each object's tags before building the tree
        cancel_event: Set to abort listing and tag fetches

    Raises:
        ObjectListingError: If the listing fails
        EnrichmentError: If tags were requested and any fetch failed
    """
    config = ObjectTreeConfig(
        prefix_to_strip=object_prefix,
        exclusions=exclusions if exclusions is not None else default_exclusions(),
    )

    if not with_tags:
        return new_object_tree_from_lister(config, lister, cancel_event)

    objects = lister.list_objects_with_tags(config.prefix_to_strip, cancel_event)
    tree = new_object_tree_with_objects(config, objects)
    logger.info(f"Built object tree with {tree.count_objects()} tagged objects")
    return tree


def generate_index_files(
    tree: ObjectTree,
    output_fs: OutputFS,
    templates: TemplateSet,
    index_template: str,
    recursive: bool = True,
    index_config: IndexConfig | None = None,
    max_workers: int = DEFAULT_MAX_CONCURRENT_RENDERS,
) -> None:
    """Write index.html and index.json files for ``tree``.

    Raises:
        RenderError: If any index file could not be written
    """
    renderers = IndexRenderers(
        [
            html_renderer(templates, index_template),
            json_renderer(index_config or IndexConfig()),
        ]
    )

    logger.info(
        f"Rendering {'all directories' if recursive else 'root index only'} "
        f"with template {index_template}"
    )
    render_object_tree(tree, renderers, output_fs, recursive, max_workers)
    logger.info("Finished rendering index files")


def output_fs_for_settings(settings: IndexSettings) -> OutputFS:
    """Local directory if configured, otherwise the output bucket."""
    if settings.local_output_directory:
        return LocalOutputFS(settings.local_output_directory)

    return S3OutputFS(
        settings.output_bucket,
        prefix=settings.output_prefix,
        server_side_encryption=settings.server_side_encryption,
        region=settings.region,
    )


def run(
    settings: IndexSettings,
    lister: ObjectSource | None = None,
    output_fs: OutputFS | None = None,
    templates: TemplateSet | None = None,
    cancel_event: threading.Event | None = None,
) -> ObjectTree:
    """Run one full index generation: list, build the tree, render.

    Returns:
        The rendered object tree

    Raises:
        ObjectListingError: If the bucket cannot be listed
        EnrichmentError: If object tags could not be fetched
        RenderError: If any index file could not be written
    """
    index_file = (
        IndexConfigFile.from_yaml(settings.index_config_file)
        if settings.index_config_file
        else IndexConfigFile(name="default")
    )
    index_config = index_file.to_index_config()

    lister = lister or S3Bucket(
        settings.bucket, region=settings.region, max_workers=settings.tag_concurrency
    )
    tree = create_object_tree(
        lister,
        settings.object_prefix,
        exclusions=index_file.to_exclusions(),
        with_tags=index_config.uses_tags,
        cancel_event=cancel_event,
    )

    output_fs = output_fs or output_fs_for_settings(settings)
    if settings.static_directory:
        copy_static_files(output_fs, settings.static_directory)

    generate_index_files(
        tree,
        output_fs,
        templates or default_templates(),
        settings.index_template,
        recursive=settings.recursive,
        index_config=index_config,
        max_workers=settings.render_concurrency,
    )
    return tree
