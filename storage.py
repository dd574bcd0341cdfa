import os
import json
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database import LocalDocument, SessionLocal, engine as default_engine, init_db

logger = logging.getLogger(__name__)

# Environment variables
S3_BUCKET = os.environ.get("S3_BUCKET")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
SNAPSHOT_PREFIX = os.environ.get("SNAPSHOT_PREFIX", "expense-manager-data")

LOCAL_STORAGE_KEY = "expense-manager-data"


def get_s3_client():
    return boto3.client("s3", region_name=AWS_REGION)


def snapshot_key(user_id: str, prefix: str = SNAPSHOT_PREFIX) -> str:
    return f"{prefix}/{user_id}/data.json"


class SnapshotStorage:
    """
    Saves and loads the per-user snapshot document.

    Remote copies go to S3 when a bucket is configured and a user id is
    known; anything else (no bucket, anonymous profile, S3 errors) lands in
    the local store under a fixed key. Errors are logged, never raised.
    """

    def __init__(self, bucket: Optional[str] = S3_BUCKET, s3_client=None, engine=None,
                 local_key: str = LOCAL_STORAGE_KEY):
        self.bucket = bucket
        self._s3 = s3_client
        self.engine = engine or default_engine
        self.Session = SessionLocal if engine is None else sessionmaker(bind=engine)
        self.local_key = local_key
        self._local_ready = False

    @property
    def s3(self):
        if self._s3 is None:
            self._s3 = get_s3_client()
        return self._s3

    def _remote_enabled(self, user_id: Optional[str]) -> bool:
        return bool(self.bucket and user_id)

    # --- public API ---

    def save(self, user_id: Optional[str], document: dict) -> bool:
        if self._remote_enabled(user_id) and self._save_remote(user_id, document):
            return True
        return self._save_local(document)

    def load(self, user_id: Optional[str]) -> Optional[dict]:
        data = None
        if self._remote_enabled(user_id):
            data, _ = self._load_remote(user_id)
        if data is None:
            data = self._load_local()
        return data

    def merge(self, user_id: Optional[str], section: dict) -> bool:
        """
        Overwrite only the top-level keys in ``section``, keeping the rest.

        When the remote copy exists but cannot be read, the merged document
        goes to the local store only; writing it to S3 would replace the
        namespaces we could not see.
        """
        document, remote_readable = None, True
        if self._remote_enabled(user_id):
            document, remote_readable = self._load_remote(user_id)
        if document is None:
            document = self._load_local()
        if not isinstance(document, dict):
            document = {}
        document.update(section)

        if not remote_readable:
            logger.warning("Remote snapshot for %s unreadable; merged copy kept locally", user_id)
            return self._save_local(document)
        return self.save(user_id, document)

    # --- S3 ---

    def _save_remote(self, user_id: str, document: dict) -> bool:
        key = snapshot_key(user_id)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=json.dumps(document).encode("utf-8"),
                ContentType="application/json",
            )
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("S3 upload of %s failed, falling back to local store: %s", key, e)
            return False

    def _load_remote(self, user_id: str) -> Tuple[Optional[dict], bool]:
        """Returns ``(document, readable)``; a missing object is readable with no document."""
        key = snapshot_key(user_id)
        try:
            obj = self.s3.get_object(Bucket=self.bucket, Key=key)
            return json.loads(obj["Body"].read()), True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None, True
            logger.warning("S3 download of %s failed: %s", key, e)
            return None, False
        except BotoCoreError as e:
            logger.warning("S3 download of %s failed: %s", key, e)
            return None, False
        except ValueError as e:
            logger.error("Snapshot %s is not valid JSON: %s", key, e)
            return None, False

    # --- Local fallback ---

    def _ensure_local(self):
        if not self._local_ready:
            init_db(self.engine)
            self._local_ready = True

    def _save_local(self, document: dict) -> bool:
        try:
            self._ensure_local()
            with self.Session() as session:
                session.merge(LocalDocument(
                    key=self.local_key,
                    payload=json.dumps(document),
                    updated_at=datetime.now(timezone.utc),
                ))
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error("Local snapshot save failed: %s", e)
            return False

    def _load_local(self) -> Optional[dict]:
        try:
            self._ensure_local()
            with self.Session() as session:
                row = session.get(LocalDocument, self.local_key)
                return json.loads(row.payload) if row else None
        except SQLAlchemyError as e:
            logger.error("Local snapshot load failed: %s", e)
            return None
        except ValueError as e:
            logger.error("Local snapshot is not valid JSON: %s", e)
            return None
