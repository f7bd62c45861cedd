"""Main entry point for the S3 index generator Lambda function and CLI."""

import argparse
import json
import logging
import sys
from typing import Any

from s3_index.config import IndexSettings, setup_logging
from s3_index.generator import run

logger = logging.getLogger(__name__)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda handler function.

    Args:
        event: Lambda event data, typically an S3 notification
        context: Lambda context object

    Returns:
        Response dictionary with status and message

    Raises:
        Exception: Any failure of the run, after logging it, so the invocation
            is reported as failed
    """
    setup_logging()

    logger.info(
        "Index generation triggered",
        extra={
            "lambda_request_id": getattr(context, "aws_request_id", "unknown"),
            "function_name": getattr(context, "function_name", "unknown"),
        },
    )
    logger.debug(f"Event: {json.dumps(event, indent=2, default=str)}")

    try:
        settings = IndexSettings.from_environment()
        tree = run(settings)

        return {
            "statusCode": 200,
            "body": (
                f"Generated {settings.index_type} index for "
                f"{tree.count_objects()} objects in {settings.bucket}"
            ),
        }

    except Exception as e:
        logger.error(f"Index generation failed: {e}", exc_info=True)
        raise


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate browsable index pages for an S3 bucket of release artifacts."
    )
    parser.add_argument("bucket", help="Bucket to index")
    parser.add_argument(
        "output_directory",
        nargs="?",
        help="Write index files to this local directory instead of the bucket",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Local entry point: ``s3-index-generator BUCKET [OUTPUT_DIRECTORY]``.

    Other settings come from the same environment variables the Lambda uses.
    """
    args = parse_args(argv)
    setup_logging()

    try:
        settings = IndexSettings.from_environment(bucket=args.bucket)
        if args.output_directory:
            settings.local_output_directory = args.output_directory
        run(settings)
    except Exception as e:
        logger.error(f"err: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
