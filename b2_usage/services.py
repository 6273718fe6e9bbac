from __future__ import annotations
"""Remote listing APIs used to authorize, resolve buckets and list files."""
import logging
from typing import Callable

import boto3
import requests
from botocore.client import Config

from .models import BucketRef, ListingEntry, ListingPage, PageCursor, Session

LOGGER = logging.getLogger(__name__)

DEFAULT_AUTH_URL = "https://api.backblazeb2.com"
API_PREFIX = "/b2api/v2"
PAGE_SIZE = 1000
DELETE_ACTIONS = frozenset({"delete", "hide"})


class B2ApiError(RuntimeError):
    """Raised when the B2 native API answers with a non-success status."""

    def __init__(self, operation: str, status: int, code: str = "", message: str = ""):
        self.operation = operation
        self.status = status
        self.code = code
        self.message = message
        detail = f"{code}: {message}" if code else message
        super().__init__(f"{operation} failed with HTTP {status} ({detail})")


class B2NativeApi:
    """Thin client for the B2 native API endpoints used by the audit."""

    def __init__(
        self,
        http_session: requests.Session | None = None,
        *,
        auth_url: str = DEFAULT_AUTH_URL,
    ):
        self._http = http_session if http_session is not None else requests.Session()
        self._auth_url = auth_url.rstrip("/")

    def authorize(self, account_id: str, application_key: str) -> Session:
        """Exchange account credentials for a session token and API URL.

        Raises:
            B2ApiError: when the credentials are rejected.
            requests.RequestException: on transport failures.
        """
        url = f"{self._auth_url}{API_PREFIX}/b2_authorize_account"
        LOGGER.debug("Authorizing account '%s' against %s", account_id, self._auth_url)
        response = self._http.get(url, auth=(account_id, application_key))
        data = self._read_json(response, "b2_authorize_account")
        return Session(
            authorization_token=data["authorizationToken"],
            api_url=data["apiUrl"].rstrip("/"),
            account_id=data.get("accountId") or account_id,
        )

    def list_buckets(self, session: Session) -> list[BucketRef]:
        data = self._post(session, "b2_list_buckets", {"accountId": session.account_id})
        return [
            BucketRef(name=bucket["bucketName"], bucket_id=bucket.get("bucketId") or "")
            for bucket in data.get("buckets", [])
        ]

    def list_files(
        self,
        session: Session,
        bucket_id: str,
        *,
        prefix: str = "",
        include_versions: bool = True,
        cursor: PageCursor | None = None,
        max_count: int = PAGE_SIZE,
        page_number: int = 1,
    ) -> ListingPage:
        """Return one page of the current file set or of every file version."""

        operation = "b2_list_file_versions" if include_versions else "b2_list_file_names"
        body: dict[str, object] = {
            "bucketId": bucket_id,
            "prefix": prefix,
            "maxFileCount": max_count,
        }
        if cursor and cursor.next_path:
            body["startFileName"] = cursor.next_path
        if cursor and cursor.next_id:
            body["startFileId"] = cursor.next_id

        data = self._post(session, operation, body)
        entries = [self._to_entry(item) for item in data.get("files", [])]
        return ListingPage(
            number=page_number,
            entries=entries,
            cursor=PageCursor(
                next_path=data.get("nextFileName"),
                next_id=data.get("nextFileId"),
            ),
        )

    def _post(self, session: Session, operation: str, body: dict[str, object]) -> dict:
        LOGGER.debug("Calling %s on %s", operation, session.api_url)
        response = self._http.post(
            f"{session.api_url}{API_PREFIX}/{operation}",
            headers={"Authorization": session.authorization_token},
            json=body,
        )
        return self._read_json(response, operation)

    @staticmethod
    def _read_json(response, operation: str) -> dict:
        if not response.ok:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            raise B2ApiError(
                operation,
                response.status_code,
                code=str(payload.get("code") or ""),
                message=str(payload.get("message") or response.text),
            )
        return response.json()

    @staticmethod
    def _to_entry(item: dict) -> ListingEntry:
        size = item.get("contentLength")
        if size is None:
            size = item.get("size")
        return ListingEntry(
            path=item["fileName"],
            size=int(size or 0),
            is_delete_marker=item.get("action") in DELETE_ACTIONS,
        )


class S3CompatibleApi:
    """Listing backend for S3-compatible endpoints such as B2's S3 API."""

    def __init__(
        self,
        endpoint_url: str,
        client_factory: Callable[..., object] | None = None,
    ):
        self._endpoint_url = endpoint_url
        self._client_factory = client_factory or boto3.client
        self._client = None

    def authorize(self, account_id: str, application_key: str) -> Session:
        LOGGER.debug("Creating S3 client for %s", self._endpoint_url)
        config = Config(signature_version="s3v4")
        self._client = self._client_factory(
            "s3",
            endpoint_url=self._endpoint_url,
            aws_access_key_id=account_id,
            aws_secret_access_key=application_key,
            config=config,
        )
        return Session(authorization_token="", api_url=self._endpoint_url, account_id=account_id)

    def list_buckets(self, session: Session) -> list[BucketRef]:
        response = self._require_client().list_buckets()
        return [
            BucketRef(name=bucket["Name"], bucket_id=bucket["Name"])
            for bucket in response.get("Buckets", [])
        ]

    def list_files(
        self,
        session: Session,
        bucket_id: str,
        *,
        prefix: str = "",
        include_versions: bool = True,
        cursor: PageCursor | None = None,
        max_count: int = PAGE_SIZE,
        page_number: int = 1,
    ) -> ListingPage:
        """Return one page from ``list_object_versions`` or ``list_objects_v2``."""

        client = self._require_client()
        params: dict[str, object] = {"Bucket": bucket_id, "MaxKeys": max_count}
        if prefix:
            params["Prefix"] = prefix

        if not include_versions:
            if cursor and cursor.next_path:
                params["ContinuationToken"] = cursor.next_path
            response = client.list_objects_v2(**params)
            entries = [
                ListingEntry(path=obj["Key"], size=int(obj.get("Size") or 0))
                for obj in response.get("Contents", [])
            ]
            next_path = response.get("NextContinuationToken") if response.get("IsTruncated") else None
            return ListingPage(number=page_number, entries=entries, cursor=PageCursor(next_path=next_path))

        if cursor and cursor.next_path:
            params["KeyMarker"] = cursor.next_path
        if cursor and cursor.next_id:
            params["VersionIdMarker"] = cursor.next_id
        response = client.list_object_versions(**params)
        entries = [
            ListingEntry(path=version["Key"], size=int(version.get("Size") or 0))
            for version in response.get("Versions", [])
        ]
        entries.extend(
            ListingEntry(path=marker["Key"], size=0, is_delete_marker=True)
            for marker in response.get("DeleteMarkers", [])
        )
        next_cursor = PageCursor()
        if response.get("IsTruncated"):
            next_cursor = PageCursor(
                next_path=response.get("NextKeyMarker"),
                next_id=response.get("NextVersionIdMarker"),
            )
        return ListingPage(number=page_number, entries=entries, cursor=next_cursor)

    def _require_client(self):
        if self._client is None:
            raise RuntimeError("authorize() must be called before listing")
        return self._client
