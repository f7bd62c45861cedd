"""S3 bucket source for listing release artifacts and their tags."""

import logging
import threading
import time
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_delay,
    stop_when_event_set,
    wait_exponential,
)

from s3_index.config import ENV_AWS_REGION, get_env_var
from s3_index.models import S3Object
from s3_index.object_source import ObjectListingError, ObjectSource, TagFetchError

logger = logging.getLogger(__name__)

TAG_FETCH_MAX_ELAPSED = 15.0


class S3Bucket(ObjectSource):
    """Lists objects in an S3 bucket and fetches their tag sets."""

    def __init__(
        self,
        bucket_name: str,
        region: str | None = None,
        max_workers: int | None = None,
        s3_client: Any | None = None,
        retry_max_elapsed: float = TAG_FETCH_MAX_ELAPSED,
        retry_wait_multiplier: float = 0.5,
    ):
        """Initialize S3Bucket.

        Args:
            bucket_name: S3 bucket name
            region: AWS region. If None, reads from environment.
            max_workers: Concurrent tag fetches. Defaults to the CPUs available to this process.
            s3_client: Preconfigured S3 client. Created from boto3 if None.
            retry_max_elapsed: Seconds after which tag fetch retries stop
            retry_wait_multiplier: Base of the exponential backoff in seconds
        """
        super().__init__(max_workers=max_workers)
        self.bucket_name = bucket_name
        self.region = region or get_env_var(ENV_AWS_REGION, default="us-east-1")
        self.retry_max_elapsed = retry_max_elapsed
        self.retry_wait_multiplier = retry_wait_multiplier

        self.s3_client = s3_client or boto3.client("s3", region_name=self.region)

        logger.info(f"Initialized S3Bucket for bucket: {self.bucket_name}")

    def list_objects(
        self, prefix: str, cancel_event: threading.Event | None = None
    ) -> list[S3Object]:
        """List all objects under ``prefix``, following pagination.

        Raises:
            ObjectListingError: If any page cannot be fetched
        """
        logger.info(f"Listing objects in s3://{self.bucket_name}/{prefix}")

        items: list[S3Object] = []
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                if cancel_event is not None and cancel_event.is_set():
                    raise ObjectListingError(
                        prefix, f"listing of s3://{self.bucket_name}/{prefix} cancelled"
                    )

                contents = page.get("Contents", [])
                items.extend(S3Object.from_listing(item) for item in contents)
                logger.debug(f"Listed page of {len(contents)} objects, {len(items)} so far")

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to list objects in s3://{self.bucket_name}/{prefix}: {e}")
            raise ObjectListingError(prefix, f"error listing objects: {e}") from e

        logger.info(f"Listed {len(items)} objects")
        return items

    def fetch_object_tags(
        self, key: str, cancel_event: threading.Event | None = None
    ) -> dict[str, str]:
        """Fetch the tag set of ``key`` with exponential backoff.

        Retries stop once ``retry_max_elapsed`` seconds have passed or
        ``cancel_event`` is set; the last error is then reported.

        Raises:
            TagFetchError: If the tags could not be fetched
        """
        stop = stop_after_delay(self.retry_max_elapsed)
        sleep = time.sleep
        if cancel_event is not None:
            stop = stop | stop_when_event_set(cancel_event)
            sleep = cancel_event.wait

        retrying = Retrying(
            stop=stop,
            wait=wait_exponential(multiplier=self.retry_wait_multiplier, max=5),
            retry=retry_if_exception_type((ClientError, BotoCoreError)),
            sleep=sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            response = retrying(
                self.s3_client.get_object_tagging, Bucket=self.bucket_name, Key=key
            )
        except (ClientError, BotoCoreError, RetryError) as e:
            logger.error(f"Failed to fetch tags for {key}: {e}")
            raise TagFetchError(key, f"error fetching tags for {key}: {e}") from e

        return {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}

    @staticmethod
    def _log_retry(retry_state: Any) -> None:
        key = retry_state.kwargs.get("Key")
        logger.warning(
            f"Tag fetch attempt {retry_state.attempt_number} failed for {key}: "
            f"{retry_state.outcome.exception()}"
        )
