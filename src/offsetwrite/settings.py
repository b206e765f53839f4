"""
Settings and configuration for offsetwrite.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at client construction time.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

__all__ = ["Settings", "create_settings_from_env", "ZONE_HOSTS"]

# Default (up, rs, rsf) hosts per zone
ZONE_HOSTS: Dict[int, Tuple[str, str, str]] = {
    0: ("https://up.qiniup.com", "https://rs.qiniu.com", "https://rsf.qiniu.com"),
    1: ("https://up-z1.qiniup.com", "https://rs-z1.qiniu.com", "https://rsf-z1.qiniu.com"),
    2: ("https://up-z2.qiniup.com", "https://rs-z2.qiniu.com", "https://rsf-z2.qiniu.com"),
}

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for offsetwrite clients.

    Backend Settings:
        bucket: Bucket (namespace) every key lives in (required)
        domain: Download domain bound to the bucket
        zone: Zone index selecting the default hosts
        up_host: Upload/compose endpoint override
        rs_host: Management (stat/delete/move) endpoint override
        rsf_host: Listing endpoint override
        insecure: Allow plain HTTP for the download domain
        authorization: Opaque Authorization header value for management calls
        http_timeout_s: HTTP request timeout in seconds
        token_expiry_s: Lifetime requested for upload tokens

    Write Path Settings:
        check_crc: Send a CRC-32 for every direct part
        staging_dir: Directory for spooled staging files (system default if unset)
        spool_max_bytes: Staged writes above this size spill to disk
        mime_type: Content type declared for composed objects

    Cache Refresh Settings:
        user_uid: Account uid used to build cache keys
        refresh_cache_url: Base URL of the cache invalidation endpoint
    """
    # Backend settings
    bucket: str
    domain: Optional[str] = None
    zone: int = 0
    up_host: Optional[str] = None
    rs_host: Optional[str] = None
    rsf_host: Optional[str] = None
    insecure: bool = False
    authorization: Optional[str] = None
    http_timeout_s: float = 30.0
    token_expiry_s: int = 3600

    # Write path settings
    check_crc: bool = True
    staging_dir: Optional[str] = None
    spool_max_bytes: int = 8 * 1024 * 1024
    mime_type: str = DEFAULT_MIME_TYPE

    # Cache refresh settings
    user_uid: Optional[int] = None
    refresh_cache_url: Optional[str] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.bucket:
            raise ValueError("bucket is required")

        # Bucket names: letters, digits, dashes, underscores
        if not re.match(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{0,62}$", self.bucket):
            raise ValueError(f"Invalid bucket format: {self.bucket}")

        if self.zone not in ZONE_HOSTS:
            raise ValueError(f"Unknown zone {self.zone}, expected one of {sorted(ZONE_HOSTS)}")

        url_pattern = r"^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?(?:/.*)?$"
        for name in ("up_host", "rs_host", "rsf_host", "refresh_cache_url"):
            value = getattr(self, name)
            if value is not None and not re.match(url_pattern, value):
                raise ValueError(f"Invalid {name} format: {value}")

        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.token_expiry_s <= 0:
            raise ValueError(f"token_expiry_s must be positive, got {self.token_expiry_s}")

        if self.spool_max_bytes < 0:
            raise ValueError(f"spool_max_bytes must be non-negative, got {self.spool_max_bytes}")

        # Cache refresh needs both pieces to build keys
        if self.refresh_cache_url and self.user_uid is None:
            raise ValueError("refresh_cache_url specified but user_uid is missing")

    @property
    def upload_endpoint(self) -> str:
        """Upload host for this bucket's zone (no trailing slash)."""
        return (self.up_host or ZONE_HOSTS[self.zone][0]).rstrip("/")

    @property
    def manage_endpoint(self) -> str:
        """Management host for stat/delete/move."""
        return (self.rs_host or ZONE_HOSTS[self.zone][1]).rstrip("/")

    @property
    def list_endpoint(self) -> str:
        """Listing host."""
        return (self.rsf_host or ZONE_HOSTS[self.zone][2]).rstrip("/")


# Settings loading functions (no caching)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Backend:
        - OFFSETWRITE_BUCKET (required)
        - OFFSETWRITE_DOMAIN (optional)
        - OFFSETWRITE_ZONE (default: 0)
        - OFFSETWRITE_UP_HOST / OFFSETWRITE_RS_HOST / OFFSETWRITE_RSF_HOST (optional)
        - OFFSETWRITE_INSECURE (default: false)
        - OFFSETWRITE_AUTHORIZATION (optional)
        - OFFSETWRITE_HTTP_TIMEOUT (default: 30.0)
        - OFFSETWRITE_TOKEN_EXPIRY (default: 3600)

        Write path:
        - OFFSETWRITE_CHECK_CRC (default: true)
        - OFFSETWRITE_STAGING_DIR (optional)
        - OFFSETWRITE_SPOOL_MAX_BYTES (default: 8 MiB)
        - OFFSETWRITE_MIME_TYPE (default: application/octet-stream)

        Cache refresh:
        - OFFSETWRITE_USER_UID (optional)
        - OFFSETWRITE_REFRESH_CACHE_URL (optional)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
        This ensures test isolation and eliminates global state.
    """
    return _load_settings_impl()


def _load_settings_impl() -> Settings:
    """Internal implementation of settings loading."""
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: Optional[int]) -> Optional[int]:
        value = os.getenv(key)
        return int(value) if value else default

    bucket = os.getenv("OFFSETWRITE_BUCKET")
    if not bucket:
        raise ValueError("OFFSETWRITE_BUCKET environment variable is required")

    return Settings(
        bucket=bucket,
        domain=os.getenv("OFFSETWRITE_DOMAIN"),
        zone=get_int("OFFSETWRITE_ZONE", 0),
        up_host=os.getenv("OFFSETWRITE_UP_HOST"),
        rs_host=os.getenv("OFFSETWRITE_RS_HOST"),
        rsf_host=os.getenv("OFFSETWRITE_RSF_HOST"),
        insecure=str_to_bool(os.getenv("OFFSETWRITE_INSECURE", "false")),
        authorization=os.getenv("OFFSETWRITE_AUTHORIZATION"),
        http_timeout_s=get_float("OFFSETWRITE_HTTP_TIMEOUT", 30.0),
        token_expiry_s=get_int("OFFSETWRITE_TOKEN_EXPIRY", 3600),
        check_crc=str_to_bool(os.getenv("OFFSETWRITE_CHECK_CRC", "true")),
        staging_dir=os.getenv("OFFSETWRITE_STAGING_DIR"),
        spool_max_bytes=get_int("OFFSETWRITE_SPOOL_MAX_BYTES", 8 * 1024 * 1024),
        mime_type=os.getenv("OFFSETWRITE_MIME_TYPE", DEFAULT_MIME_TYPE),
        user_uid=get_int("OFFSETWRITE_USER_UID", None),
        refresh_cache_url=os.getenv("OFFSETWRITE_REFRESH_CACHE_URL"),
    )
