"""Abstract base class for object listing sources."""

import logging
import os
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor

from s3_index.models import S3Object

logger = logging.getLogger(__name__)


class ObjectListingError(Exception):
    """Raised when a bucket listing cannot be completed."""

    def __init__(self, prefix: str, message: str):
        self.prefix = prefix
        super().__init__(message)


class TagFetchError(Exception):
    """Raised when the tags of a single object cannot be fetched."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class EnrichmentError(Exception):
    """Raised when one or more objects could not be enriched with tags.

    Attributes:
        errors: One TagFetchError per failed object
    """

    def __init__(self, errors: list[TagFetchError]):
        self.errors = errors
        super().__init__(
            f"there were {len(errors)} errors fetching object tags: "
            + "; ".join(str(e) for e in errors[:5])
        )


def available_cpus() -> int:
    """CPUs this process may run on, honoring affinity where the platform reports it."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


class ObjectSource(ABC):
    """Base class for anything that can list objects and fetch their tags.

    The object tree and the renderers only ever talk to this interface, so a
    bucket, a local fixture or an in-memory fake can back an index run.

    Attributes:
        max_workers: Upper bound on concurrent tag fetches
    """

    def __init__(self, max_workers: int | None = None) -> None:
        """Initialize the source.

        Args:
            max_workers: Concurrent tag fetches. Defaults to the CPUs available
                to this process.
        """
        self.max_workers = max_workers or available_cpus()

    @abstractmethod
    def list_objects(
        self, prefix: str, cancel_event: threading.Event | None = None
    ) -> list[S3Object]:
        """List every object under ``prefix``.

        Args:
            prefix: Key prefix to bound the listing to
            cancel_event: Set to abort an in-progress listing

        Returns:
            Objects with key, last_modified and size populated

        Raises:
            ObjectListingError: If the listing cannot be completed
        """

    @abstractmethod
    def fetch_object_tags(
        self, key: str, cancel_event: threading.Event | None = None
    ) -> dict[str, str]:
        """Fetch the tag set for one object.

        Args:
            key: Object key
            cancel_event: Set to abort retries

        Returns:
            Mapping of tag key to tag value

        Raises:
            TagFetchError: If the tags cannot be fetched
        """

    def list_objects_with_tags(
        self, prefix: str, cancel_event: threading.Event | None = None
    ) -> list[S3Object]:
        """List objects under ``prefix`` and attach each object's tags.

        Tags are fetched concurrently with at most ``max_workers`` requests in
        flight. Every fetch is allowed to finish before this returns, even
        when some of them fail.

        Args:
            prefix: Key prefix to bound the listing to
            cancel_event: Set to stop starting new tag fetches

        Returns:
            Listed objects, in listing order, with tags attached

        Raises:
            ObjectListingError: If the listing fails
            EnrichmentError: If any object's tags could not be fetched
        """
        items = self.list_objects(prefix, cancel_event)
        logger.info(
            f"Fetching tags for {len(items)} objects with {self.max_workers} workers"
        )

        errors: list[TagFetchError] = []
        errors_lock = threading.Lock()

        def enrich(index: int) -> None:
            key = items[index].key
            try:
                if cancel_event is not None and cancel_event.is_set():
                    raise TagFetchError(key, f"tag fetch for {key} cancelled")
                tags = self.fetch_object_tags(key, cancel_event)
            except TagFetchError as e:
                with errors_lock:
                    errors.append(e)
                return

            items[index] = items[index].with_tags(tags)

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="TagFetcher"
        ) as executor:
            futures = [executor.submit(enrich, index) for index in range(len(items))]

        for future in futures:
            future.result()

        if errors:
            logger.error(f"Failed to fetch tags for {len(errors)} objects")
            raise EnrichmentError(errors)

        logger.info(f"Fetched tags for {len(items)} objects")
        return items
