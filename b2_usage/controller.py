from __future__ import annotations
"""Controller sequencing authorization, bucket lookup and the usage scan."""
import logging
from typing import Optional

from .models import BucketRef, ScanResult, Session
from .scanner import ProgressFn, scan_bucket
from .services import B2NativeApi
from .settings import AuditSettings

LOGGER = logging.getLogger(__name__)


class NotAuthorizedError(RuntimeError):
    """Raised when a remote operation is attempted before authorizing."""


class BucketNotFoundError(LookupError):
    """Raised when a bucket name cannot be resolved to an identifier."""

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name
        super().__init__(f"Bucket '{bucket_name}' not found")


class UsageAuditController:
    """Coordinates the audit steps against a listing API."""

    def __init__(self, settings: AuditSettings, api=None):
        self._settings = settings
        self._api = api or B2NativeApi(auth_url=settings.auth_url)
        self._session: Session | None = None

    @property
    def is_authorized(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Session | None:
        return self._session

    def authorize(self) -> Session:
        session = self._api.authorize(self._settings.account_id, self._settings.application_key)
        LOGGER.debug("Authorized account '%s' (api url %s)", session.account_id, session.api_url)
        self._session = session
        return session

    def resolve_bucket(self, bucket_name: str) -> BucketRef:
        session = self._require_session()
        for bucket in self._api.list_buckets(session):
            if bucket.name == bucket_name and bucket.bucket_id:
                LOGGER.debug("Resolved bucket '%s' to id '%s'", bucket_name, bucket.bucket_id)
                return bucket
        raise BucketNotFoundError(bucket_name)

    def scan(
        self,
        bucket: BucketRef,
        *,
        prefix: str = "",
        include_versions: bool = True,
        progress_callback: Optional[ProgressFn] = None,
    ) -> ScanResult:
        session = self._require_session()
        return scan_bucket(
            self._api,
            session,
            bucket,
            prefix=prefix,
            include_versions=include_versions,
            progress_callback=progress_callback,
        )

    def _require_session(self) -> Session:
        if self._session is None:
            raise NotAuthorizedError("Not authorized with the storage API")
        return self._session
