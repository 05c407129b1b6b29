"""
S3-compatible request signer.

Produces SigV4 query-signed (presigned) URLs for PUT/GET/DELETE against a
single object key. No SDK, no session: pure HMAC-SHA256 request signing,
so it works with AWS S3, Cloudflare R2, MinIO and friends.

Why presigned URLs?
- Clients upload directly to the bucket (the API never sees the bytes)
- Long-lived credentials never leave the server
- Each URL authorizes one method on one key for a short time
"""
import hashlib
import hmac
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, urlsplit

import httpx

from app.config import Settings, settings
from app.exceptions import StorageConfigError
from app.utils.metrics import storage_deletes_total

logger = logging.getLogger(__name__)

AWS_ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
EMPTY_PAYLOAD_SHA256 = hashlib.sha256(b"").hexdigest()

DEFAULT_EXPIRES_IN = 900  # 15 minutes
DELETE_EXPIRES_IN = 60
MAX_KEY_NAME_LENGTH = 120


# ============================================================================
# Configuration
# ============================================================================

def normalize_endpoint(endpoint: str) -> str:
    """Ensure a scheme (https by default) and drop one trailing slash."""
    trimmed = endpoint.strip()
    if not re.match(r"^https?://", trimmed, flags=re.IGNORECASE):
        trimmed = f"https://{trimmed}"
    return trimmed[:-1] if trimmed.endswith("/") else trimmed


@dataclass(frozen=True)
class StorageConfig:
    """Immutable storage configuration, built once and injected into the signer."""
    access_key_id: str
    secret_access_key: str
    bucket: str
    region: str
    endpoint: str
    force_path_style: bool = False
    public_base_url: Optional[str] = None

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "StorageConfig":
        """
        Build the config from application settings.

        Raises:
            StorageConfigError: If credentials, bucket, region or endpoint are missing
        """
        endpoint = source.s3_endpoint or (
            f"https://s3.{source.s3_region}.amazonaws.com" if source.s3_region else None
        )
        required = {
            "S3_ACCESS_KEY_ID": source.s3_access_key_id,
            "S3_SECRET_ACCESS_KEY": source.s3_secret_access_key,
            "S3_BUCKET": source.s3_bucket,
            "S3_REGION": source.s3_region,
            "S3_ENDPOINT": endpoint,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise StorageConfigError(
                "S3 storage is not configured. Missing: " + ", ".join(missing)
            )

        public_base = (source.asset_public_url or "").strip().rstrip("/") or None

        return cls(
            access_key_id=source.s3_access_key_id,
            secret_access_key=source.s3_secret_access_key,
            bucket=source.s3_bucket,
            region=source.s3_region,
            endpoint=normalize_endpoint(endpoint),
            force_path_style=source.s3_force_path_style,
            public_base_url=public_base,
        )


# ============================================================================
# Signing primitives
# ============================================================================

def to_amz_date(moment: datetime) -> str:
    """YYYYMMDDTHHMMSSZ in UTC."""
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def to_date_stamp(moment: datetime) -> str:
    """YYYYMMDD in UTC."""
    return moment.astimezone(timezone.utc).strftime("%Y%m%d")


def encode_rfc3986(value: str) -> str:
    """
    Strict RFC 3986 percent-encoding.

    Only A-Z a-z 0-9 - _ . ~ pass through; S3 additionally requires
    ! ' ( ) * to be escaped, which quote() does when safe is empty.
    """
    return quote(value, safe="")


def encode_key(key: str) -> str:
    """Encode each path segment of an object key, keeping the slashes."""
    return "/".join(encode_rfc3986(segment) for segment in key.split("/"))


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _hmac(key: bytes, value: str) -> bytes:
    return hmac.new(key, value.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret: str, date_stamp: str, region: str, service: str = SERVICE) -> bytes:
    """HMAC(HMAC(HMAC(HMAC("AWS4"+secret, date), region), service), "aws4_request")."""
    k_date = _hmac(f"AWS4{secret}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def _join_uri_segments(*segments: Optional[str]) -> str:
    parts = [s.strip("/") for s in segments if s and s.strip()]
    if not parts:
        return "/"
    return "/" + "/".join(parts)


def build_storage_key(dataset_id: int, original_name: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Build a collision-resistant object key for a new upload.

    Pattern: datasets/{dataset_id}/{epoch_ms}-{normalized-name}

    The name is lowercased, runs of anything outside [a-z0-9.-] become a
    single dash, leading/trailing dashes are trimmed and the result is cut
    to 120 characters. Uniqueness rests on the millisecond timestamp.
    """
    normalized = re.sub(r"[^a-z0-9.-]+", "-", original_name.lower())
    normalized = re.sub(r"^-+|-+$", "", normalized)[:MAX_KEY_NAME_LENGTH]
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"datasets/{dataset_id}/{timestamp_ms}-{normalized or 'asset'}"


# ============================================================================
# Signer
# ============================================================================

@dataclass(frozen=True)
class ObjectLocation:
    host: str
    canonical_uri: str
    base_url: str


@dataclass
class PresignedRequest:
    """A signed URL plus the headers the caller must send with it."""
    url: str
    headers: Dict[str, str] = field(default_factory=dict)


class StorageSigner:
    """
    Presigned URL generator for one bucket.

    Signing is synchronous CPU work; only delete_object does network I/O.
    """

    def __init__(self, config: StorageConfig):
        self.config = config

    @property
    def bucket(self) -> str:
        return self.config.bucket

    def resolve_location(self, key: str) -> ObjectLocation:
        """Host, canonical URI and base URL for a key under the addressing style."""
        parts = urlsplit(self.config.endpoint)
        host = parts.netloc.lower()
        path_prefix = "" if parts.path in ("", "/") else parts.path
        encoded_key = encode_key(key)

        if self.config.force_path_style:
            canonical_uri = _join_uri_segments(path_prefix, self.config.bucket, encoded_key)
            return ObjectLocation(
                host=host,
                canonical_uri=canonical_uri,
                base_url=f"{parts.scheme}://{host}{canonical_uri}",
            )

        canonical_uri = _join_uri_segments(path_prefix, encoded_key)
        virtual_host = f"{self.config.bucket}.{host}"
        return ObjectLocation(
            host=virtual_host,
            canonical_uri=canonical_uri,
            base_url=f"{parts.scheme}://{virtual_host}{canonical_uri}",
        )

    def build_public_url(self, key: str) -> str:
        """Public URL of an object: override base if configured, else bucket address."""
        if self.config.public_base_url:
            return f"{self.config.public_base_url}/{encode_key(key)}"
        return self.resolve_location(key).base_url

    def create_presigned_request(
        self,
        key: str,
        method: str = "PUT",
        content_type: Optional[str] = None,
        expires_in: int = DEFAULT_EXPIRES_IN,
        now: Optional[datetime] = None,
        payload_hash: Optional[str] = None,
    ) -> PresignedRequest:
        """
        Sign one request with SigV4 query parameters.

        Args:
            key: Object key
            method: PUT, GET or DELETE
            content_type: Signed as a header when given (client must send it)
            expires_in: URL lifetime in seconds
            now: Signing time (defaults to current UTC time)
            payload_hash: Override of the payload hash; PUT defaults to
                UNSIGNED-PAYLOAD, everything else to the empty-body SHA-256

        Returns:
            PresignedRequest with the URL and required headers
        """
        method = method.upper()
        moment = now or datetime.now(timezone.utc)
        amz_date = to_amz_date(moment)
        date_stamp = to_date_stamp(moment)
        credential_scope = f"{date_stamp}/{self.config.region}/{SERVICE}/aws4_request"
        location = self.resolve_location(key)

        signed_headers = "host"
        canonical_headers = f"host:{location.host}\n"
        if content_type:
            canonical_headers = f"content-type:{content_type}\n{canonical_headers}"
            signed_headers = f"content-type;{signed_headers}"

        if payload_hash is None:
            payload_hash = UNSIGNED_PAYLOAD if method == "PUT" else EMPTY_PAYLOAD_SHA256

        query_params: List[Tuple[str, str]] = [
            ("X-Amz-Algorithm", AWS_ALGORITHM),
            ("X-Amz-Credential", f"{self.config.access_key_id}/{credential_scope}"),
            ("X-Amz-Date", amz_date),
            ("X-Amz-Expires", str(expires_in)),
            ("X-Amz-SignedHeaders", signed_headers),
        ]
        canonical_querystring = "&".join(sorted(
            f"{encode_rfc3986(name)}={encode_rfc3986(value)}" for name, value in query_params
        ))

        canonical_request = "\n".join([
            method,
            location.canonical_uri,
            canonical_querystring,
            canonical_headers,
            signed_headers,
            payload_hash,
        ])

        string_to_sign = "\n".join([
            AWS_ALGORITHM,
            amz_date,
            credential_scope,
            sha256_hex(canonical_request),
        ])

        signing_key = derive_signing_key(self.config.secret_access_key, date_stamp, self.config.region)
        signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

        return PresignedRequest(
            url=f"{location.base_url}?{canonical_querystring}&X-Amz-Signature={signature}",
            headers={"Content-Type": content_type} if content_type else {},
        )

    def create_presigned_upload_url(
        self,
        key: str,
        content_type: str,
        expires_in: int = DEFAULT_EXPIRES_IN,
        now: Optional[datetime] = None,
    ) -> PresignedRequest:
        """Presigned PUT for a direct client upload."""
        return self.create_presigned_request(
            key, method="PUT", content_type=content_type, expires_in=expires_in, now=now
        )

    async def delete_object(self, key: str, client: Optional[httpx.AsyncClient] = None) -> bool:
        """
        Delete an object with a short-lived signed DELETE.

        Best-effort: failures are logged and reported as False, never raised.
        """
        try:
            request = self.create_presigned_request(key, method="DELETE", expires_in=DELETE_EXPIRES_IN)
            if client is not None:
                response = await client.delete(request.url, headers=request.headers)
            else:
                async with httpx.AsyncClient(timeout=10.0) as owned_client:
                    response = await owned_client.delete(request.url, headers=request.headers)

            if response.status_code >= 300:
                storage_deletes_total.labels(outcome="rejected").inc()
                logger.error(
                    f"S3 delete error for {key}: {response.status_code} {response.text}"
                )
                return False

            storage_deletes_total.labels(outcome="deleted").inc()
            logger.debug(f"Deleted object {key}")
            return True

        except httpx.HTTPError as e:
            storage_deletes_total.labels(outcome="error").inc()
            logger.error(f"Failed to delete storage object {key}: {e}")
            return False


# Only a successfully built signer is cached; a failed build is retried
# on the next call.
_signer: Optional[StorageSigner] = None


def get_storage_signer() -> StorageSigner:
    """
    Get the process-wide signer, building it on first use.

    Raises:
        StorageConfigError: If storage is not configured
    """
    global _signer
    if _signer is None:
        _signer = StorageSigner(StorageConfig.from_settings(settings))
        logger.info(f"Storage signer initialized for bucket: {_signer.bucket}")
    return _signer


def reset_storage_signer() -> None:
    """Drop the cached signer (settings reload, tests)."""
    global _signer
    _signer = None
