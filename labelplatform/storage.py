"""S3-compatible object storage client for a single bucket."""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import httpx

log = logging.getLogger(__name__)

_MAX_EXPIRY = timedelta(days=7)
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}


class StorageError(Exception):
    """Raised when the object store rejects a request."""


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode(), hashlib.sha256).digest()


def _q(value: str, safe: str = "-_.~") -> str:
    return quote(value, safe=safe)


class MinioClient:
    """Bucket-scoped client signing requests with AWS signature version 4."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        *,
        secure: bool = False,
        region: str = "us-east-1",
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.bucket = bucket
        self.region = region
        self._access_key = access_key
        self._secret_key = secret_key
        self._scheme = "https" if secure else "http"
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._http = httpx.Client(transport=transport)

    def _path(self, key: str | None) -> str:
        path = "/" + _q(self.bucket)
        if key:
            path += "/" + _q(key, safe="-_.~/")
        return path

    def _scope(self, date: str) -> str:
        return f"{date}/{self.region}/s3/aws4_request"

    def _signature(self, amz_date: str, canonical_request: str) -> str:
        date = amz_date[:8]
        to_sign = "\n".join(
            [
                "AWS4-HMAC-SHA256",
                amz_date,
                self._scope(date),
                hashlib.sha256(canonical_request.encode()).hexdigest(),
            ]
        )
        key = _hmac(("AWS4" + self._secret_key).encode(), date)
        for part in (self.region, "s3", "aws4_request"):
            key = _hmac(key, part)
        return hmac.new(key, to_sign.encode(), hashlib.sha256).hexdigest()

    def _request(
        self, method: str, key: str | None = None, body: bytes = b"", extra: Mapping[str, str] | None = None
    ) -> httpx.Response:
        amz_date = self._clock().strftime("%Y%m%dT%H%M%SZ")
        path = self._path(key)
        headers = {
            "host": self.endpoint,
            "x-amz-content-sha256": hashlib.sha256(body).hexdigest(),
            "x-amz-date": amz_date,
        }
        signed = ";".join(sorted(headers))
        canonical = "\n".join(
            [
                method,
                path,
                "",
                "".join(f"{k}:{headers[k]}\n" for k in sorted(headers)),
                signed,
                headers["x-amz-content-sha256"],
            ]
        )
        headers["authorization"] = (
            f"AWS4-HMAC-SHA256 Credential={self._access_key}/{self._scope(amz_date[:8])}, "
            f"SignedHeaders={signed}, Signature={self._signature(amz_date, canonical)}"
        )
        headers.update(extra or {})
        url = f"{self._scheme}://{self.endpoint}{path}"
        try:
            return self._http.request(method, url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            raise StorageError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _check(response: httpx.Response, action: str) -> httpx.Response:
        if response.status_code >= 300:
            raise StorageError(f"failed to {action}: status {response.status_code}")
        return response

    def bucket_exists(self) -> bool:
        """Whether the bucket exists."""
        response = self._request("HEAD")
        if response.status_code == 404:
            return False
        self._check(response, "check bucket existence")
        return True

    def make_bucket(self) -> None:
        """Create the bucket."""
        self._check(self._request("PUT"), "create bucket")

    def ensure_bucket(self) -> None:
        """Create the bucket unless it already exists."""
        if not self.bucket_exists():
            self.make_bucket()
            log.info("Created bucket: %s", self.bucket)
        log.info("Successfully connected to MinIO and verified bucket: %s", self.bucket)

    def put_object(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        """Upload an object."""
        self._check(self._request("PUT", key, data, {"content-type": content_type}), "upload object")

    def get_object(self, key: str) -> bytes:
        """Download an object's content."""
        return self._check(self._request("GET", key), "get object").content

    def remove_object(self, key: str) -> None:
        """Delete an object."""
        self._check(self._request("DELETE", key), "remove object")

    def presigned_get_object(self, key: str, expiry: timedelta) -> str:
        """Return a URL granting GET access to the object for the given time."""
        if not timedelta(seconds=1) <= expiry <= _MAX_EXPIRY:
            raise ValueError("expiry must be between 1 second and 7 days")
        amz_date = self._clock().strftime("%Y%m%dT%H%M%SZ")
        path = self._path(key)
        params = {
            "X-Amz-Algorithm": "AWS4-HMAC-SHA256",
            "X-Amz-Credential": f"{self._access_key}/{self._scope(amz_date[:8])}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(int(expiry.total_seconds())),
            "X-Amz-SignedHeaders": "host",
        }
        query = "&".join(f"{_q(k)}={_q(v)}" for k, v in sorted(params.items()))
        canonical = "\n".join(
            ["GET", path, query, f"host:{self.endpoint}\n", "host", "UNSIGNED-PAYLOAD"]
        )
        signature = self._signature(amz_date, canonical)
        return f"{self._scheme}://{self.endpoint}{path}?{query}&X-Amz-Signature={signature}"


def new_minio_client(env: Mapping[str, str] | None = None) -> MinioClient:
    """Build a client from MINIO_* variables and make sure its bucket exists."""
    env = os.environ if env is None else env
    client = MinioClient(
        env.get("MINIO_ENDPOINT", ""),
        env.get("MINIO_ACCESS_KEY", ""),
        env.get("MINIO_SECRET_KEY", ""),
        env.get("MINIO_BUCKET_NAME", ""),
        secure=env.get("MINIO_USE_SSL", "") in _TRUE,
    )
    client.ensure_bucket()
    return client