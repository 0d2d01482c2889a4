"""Object store client for legacy JSON documents, with bounded retries."""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import ClientError

from battlelog_migration.errors import MissingDocumentError, ObjectStoreError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 1.0

# Record type -> well-known legacy document name
LEGACY_DOCUMENTS = {
    "deck_master": "legacy/deck-master.json",
    "battle_logs": "legacy/battle-logs.json",
    "my_decks": "legacy/my-decks.json",
}

MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class ObjectStoreClient:
    """Read and write whole JSON documents in an S3-compatible bucket.

    Every read and write is retried up to ``max_attempts`` times with
    exponential backoff (``base_delay * 2 ** attempt`` seconds between
    attempts). A document that does not exist is reported immediately.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        s3_client: Optional[Any] = None,
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: Optional[str] = None,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the object store client.

        Args:
            bucket: Bucket name (or from env: OBJECT_STORE_BUCKET)
            s3_client: Pre-built boto3 S3 client (built from env if omitted)
            endpoint_url: S3-compatible endpoint (or from env: OBJECT_STORE_ENDPOINT_URL)
            aws_access_key_id: Access key (or from env)
            aws_secret_access_key: Secret key (or from env)
            region_name: Region (or from env: AWS_REGION)
            max_attempts: Maximum attempts per operation
            base_delay: Backoff base in seconds
            sleep: Sleep function used between attempts
        """
        self.bucket = bucket or os.getenv("OBJECT_STORE_BUCKET")
        if not self.bucket:
            raise ValueError("OBJECT_STORE_BUCKET is required")

        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

        self.s3_client = s3_client or boto3.client(
            "s3",
            endpoint_url=endpoint_url or os.getenv("OBJECT_STORE_ENDPOINT_URL"),
            aws_access_key_id=aws_access_key_id or os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=aws_secret_access_key or os.getenv("AWS_SECRET_ACCESS_KEY"),
            region_name=region_name or os.getenv("AWS_REGION", "us-east-1"),
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after the zero-based ``attempt`` fails."""
        return self.base_delay * 2 ** attempt

    def _with_retries(self, operation: str, name: str, func: Callable[[], Any]) -> Any:
        last_error: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                return func()
            except MissingDocumentError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt + 1} failed for {name}: {e}",
                    extra={
                        "operation": operation,
                        "document": name,
                        "retry_attempt": attempt + 1,
                        "error": str(e),
                    },
                )
                if attempt < self.max_attempts - 1:
                    self._sleep(self.backoff_delay(attempt))

        raise ObjectStoreError(operation, name, self.max_attempts, last_error)

    def _download(self, name: str) -> Any:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=name)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_KEY_CODES:
                raise MissingDocumentError(name) from e
            raise

        body = response["Body"].read()
        return json.loads(body.decode("utf-8"))

    def _upload(self, name: str, data: Any) -> None:
        content = json.dumps(data, indent=2, ensure_ascii=False)
        self.s3_client.put_object(
            Bucket=self.bucket,
            Key=name,
            Body=content.encode("utf-8"),
            ContentType="application/json",
        )

    def read_json(self, name: str) -> Any:
        """Download and parse one JSON document.

        Raises:
            MissingDocumentError: If the document does not exist
            ObjectStoreError: If every attempt failed
        """
        data = self._with_retries("read", name, lambda: self._download(name))
        logger.info(f"Read {name} from s3://{self.bucket}")
        return data

    def write_json(self, name: str, data: Any) -> None:
        """Serialize and upload one JSON document, replacing any existing one.

        Raises:
            ObjectStoreError: If every attempt failed
        """
        self._with_retries("write", name, lambda: self._upload(name, data))
        logger.info(f"Wrote {name} to s3://{self.bucket}")

    def upload_legacy_documents(
        self,
        directory: str,
        document_names: Optional[dict] = None,
    ) -> dict:
        """Upload the legacy JSON files found in a local directory.

        Files are looked up by the base name of each document name
        (e.g. ``deck-master.json``). Missing local files are skipped.

        Returns:
            Mapping of record type to uploaded document name, or None when
            the local file was not found
        """
        document_names = document_names or LEGACY_DOCUMENTS
        base = Path(directory)
        uploaded = {}

        for record_type, name in document_names.items():
            local_path = base / Path(name).name
            if not local_path.exists():
                logger.warning(f"{local_path} not found, skipping")
                uploaded[record_type] = None
                continue

            with open(local_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            self.write_json(name, data)
            uploaded[record_type] = name

        return uploaded
