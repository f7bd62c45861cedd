"""Destination filesystems that index files are written to."""

import io
import logging
import mimetypes
import posixpath
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

CACHE_CONTROL = "max-age=300"


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(posixpath.join("/", path)).lstrip("/")
    return "" if cleaned == "." else cleaned


class OutputFS(ABC):
    """A writable tree of files rooted at ``base_path``.

    Paths passed to the methods are relative to the root of this view; "/"
    and "" both name the root itself.
    """

    def __init__(self, base_path: str = "") -> None:
        self.base_path = _clean(base_path)

    def _resolve(self, path: str) -> str:
        return _clean(posixpath.join(self.base_path, _clean(path)))

    @abstractmethod
    def mkdir_all(self, path: str) -> None:
        """Create ``path`` and any missing parents. Existing directories are fine."""

    @abstractmethod
    def open_file(self, path: str, binary: bool = False) -> IO[Any]:
        """Open ``path`` for writing, creating or truncating it."""

    @abstractmethod
    def sub_fs(self, path: str) -> "OutputFS":
        """Return a view of this filesystem rooted at ``path``."""


class LocalOutputFS(OutputFS):
    """Writes files below a directory on local disk."""

    def __init__(self, root_dir: str, base_path: str = "", create: bool = True) -> None:
        """Initialize LocalOutputFS.

        Args:
            root_dir: Local output directory
            base_path: Sub-path of ``root_dir`` this view is rooted at
            create: Create ``root_dir`` if it does not exist
        """
        super().__init__(base_path)
        self.root_dir = Path(root_dir)
        if create:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Writing index files to {self.root_dir}")

    def _local_path(self, path: str) -> Path:
        resolved = self._resolve(path)
        return self.root_dir / resolved if resolved else self.root_dir

    def mkdir_all(self, path: str) -> None:
        self._local_path(path).mkdir(parents=True, exist_ok=True)

    def open_file(self, path: str, binary: bool = False) -> IO[Any]:
        local_path = self._local_path(path)
        logger.debug(f"Writing {local_path}")
        if binary:
            return open(local_path, "wb")
        return open(local_path, "w", encoding="utf-8")

    def sub_fs(self, path: str) -> "LocalOutputFS":
        return LocalOutputFS(
            str(self.root_dir), posixpath.join(self.base_path, _clean(path)), create=False
        )


class _S3UploadStream:
    """Buffers writes in memory and uploads the buffer when closed."""

    def __init__(self, output_fs: "S3OutputFS", key: str, binary: bool) -> None:
        self._output_fs = output_fs
        self._key = key
        self._buffer: io.StringIO | io.BytesIO = io.BytesIO() if binary else io.StringIO()
        self.closed = False

    def write(self, data: Any) -> int:
        return self._buffer.write(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        body = self._buffer.getvalue()
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._output_fs.upload(self._key, body)

    def __enter__(self) -> "_S3UploadStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.closed = True


class S3OutputFS(OutputFS):
    """Writes files as objects in an S3 bucket.

    S3 has no directories, so ``mkdir_all`` succeeds without writing
    anything.
    """

    def __init__(
        self,
        bucket_name: str,
        prefix: str = "",
        server_side_encryption: str = "",
        region: str = "us-east-1",
        s3_client: Any | None = None,
        max_retries: int = 3,
    ) -> None:
        """Initialize S3OutputFS.

        Args:
            bucket_name: Destination bucket
            prefix: Key prefix this view is rooted at
            server_side_encryption: SSE algorithm, e.g. "aws:kms". Empty disables it.
            region: AWS region for the client
            s3_client: Preconfigured S3 client. Created from boto3 if None.
            max_retries: Upload attempts per file
        """
        super().__init__(prefix)
        self.bucket_name = bucket_name
        self.server_side_encryption = server_side_encryption
        self.region = region
        self.max_retries = max_retries
        self.s3_client = s3_client or boto3.client("s3", region_name=region)

    def mkdir_all(self, path: str) -> None:
        logger.debug(f"Directory s3://{self.bucket_name}/{self._resolve(path)} needs no marker")

    def open_file(self, path: str, binary: bool = False) -> _S3UploadStream:
        return _S3UploadStream(self, self._resolve(path), binary)

    def sub_fs(self, path: str) -> "S3OutputFS":
        return S3OutputFS(
            self.bucket_name,
            prefix=posixpath.join(self.base_path, _clean(path)),
            server_side_encryption=self.server_side_encryption,
            region=self.region,
            s3_client=self.s3_client,
            max_retries=self.max_retries,
        )

    def upload(self, key: str, body: bytes) -> None:
        """Upload ``body`` to ``key`` with retry logic.

        Raises:
            ClientError: If all upload attempts fail
        """
        content_type, _ = mimetypes.guess_type(key)
        extra_args: dict[str, Any] = {
            "ContentType": content_type or "application/octet-stream",
            "CacheControl": CACHE_CONTROL,
        }
        if self.server_side_encryption:
            extra_args["ServerSideEncryption"] = self.server_side_encryption
            extra_args["BucketKeyEnabled"] = True

        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    f"Uploading to s3://{self.bucket_name}/{key} (attempt {attempt + 1})"
                )
                self.s3_client.put_object(
                    Bucket=self.bucket_name, Key=key, Body=body, **extra_args
                )
                return

            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Upload attempt {attempt + 1} failed for {key}: {e}")

                if attempt == self.max_retries - 1:
                    logger.error(f"All upload attempts failed for {key}")
                    raise

                # Exponential backoff
                time.sleep(2**attempt)


def copy_static_files(dest_fs: OutputFS, source_dir: str) -> int:
    """Copy every file below ``source_dir`` into ``dest_fs``.

    Returns:
        Number of files copied

    Raises:
        FileNotFoundError: If ``source_dir`` does not exist
    """
    source = Path(source_dir)
    if not source.is_dir():
        raise FileNotFoundError(f"Static directory not found: {source_dir}")

    copied = 0
    for file_path in sorted(source.rglob("*")):
        if not file_path.is_file():
            continue
        relative = file_path.relative_to(source).as_posix()
        dest_fs.mkdir_all(posixpath.dirname(relative))
        with dest_fs.open_file(relative, binary=True) as f:
            f.write(file_path.read_bytes())
        copied += 1

    logger.info(f"Copied {copied} static files from {source_dir}")
    return copied
