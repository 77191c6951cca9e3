"""
app/services/asset_resolution_service.py

Resolves design numbers to design images and worksheets in object storage.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol
from urllib.parse import quote

import requests

from app.config import AssetStorageSettings, ExternalHTTPSettings
from app.repositories.document_repository import DesignAssetPath
from app.repositories.errors import DesignNotFoundError
from compositor.errors import AssetResolutionError
from compositor.resources import TemporaryAsset

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Same safe set as a browser's encodeURIComponent; folder separators are escaped too.
_KEY_SAFE_CHARACTERS = "-_.!~*'()"


class DesignPathLookup(Protocol):
    def get_design_path(self, design_no: str) -> DesignAssetPath:
        ...


class AssetFetchError(AssetResolutionError):
    """
    Raised when an object cannot be downloaded after retries.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_object_key(path: DesignAssetPath, extension: str) -> str:
    """
    Storage key ``"<first two chars> <category>/<subcategory>/<design_no><ext>"``.
    """

    category_folder = f"{path.design_no[:2]} {path.category_name}"
    return f"{category_folder}/{path.subcategory_name}/{path.design_no}{extension}"


def encode_object_key(key: str) -> str:
    return quote(key, safe=_KEY_SAFE_CHARACTERS).replace("%20", "+")


class S3AssetResolver:
    """
    Downloads public design objects over HTTPS with retry and exponential backoff.
    """

    def __init__(
        self,
        *,
        path_lookup: DesignPathLookup,
        storage_settings: AssetStorageSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not storage_settings.is_configured:
            raise ValueError("ASSET_BUCKET_NAME and ASSET_REGION must be set to resolve design assets.")
        self._path_lookup = path_lookup
        self._storage = storage_settings
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier

    def object_url(self, key: str) -> str:
        return (
            f"https://{self._storage.bucket_name}.s3.{self._storage.region}.amazonaws.com/"
            f"{encode_object_key(key)}"
        )

    def fetch_design_image(self, design_no: str) -> TemporaryAsset:
        path = self._lookup(design_no)
        key = build_object_key(path, self._storage.image_extension)
        return self._download(key, suffix=self._storage.image_extension)

    def fetch_worksheet(self, design_no: str) -> TemporaryAsset:
        path = self._lookup(design_no)
        last_error: AssetResolutionError | None = None
        for extension in self._storage.worksheet_extensions:
            key = build_object_key(path, extension)
            try:
                return self._download(key, suffix=extension)
            except AssetResolutionError as exc:
                logger.warning(
                    "Worksheet candidate failed design_no=%s extension=%s error=%s",
                    design_no,
                    extension,
                    exc,
                )
                last_error = exc
        raise AssetResolutionError(f"Worksheet not found for design {design_no!r}.") from last_error

    def _lookup(self, design_no: str) -> DesignAssetPath:
        if not design_no:
            raise AssetResolutionError("Design number is required.")
        try:
            return self._path_lookup.get_design_path(design_no)
        except DesignNotFoundError as exc:
            raise AssetResolutionError(str(exc)) from exc

    def _download(self, key: str, *, suffix: str) -> TemporaryAsset:
        url = self.object_url(key)
        response = self._request(url)
        content = response.content
        if not content:
            raise AssetFetchError(f"Received empty file for {key!r}.", status_code=response.status_code)

        try:
            asset = TemporaryAsset.from_bytes(
                content,
                name=key,
                suffix=suffix,
                content_type=response.headers.get("Content-Type"),
            )
        except OSError as exc:
            raise AssetResolutionError(f"Could not spool {key!r} to disk: {exc}") from exc
        logger.info("Asset fetched key=%s bytes=%s", key, len(content))
        return asset

    def _request(self, url: str) -> requests.Response:
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.get(url, timeout=self._timeout_seconds)
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except requests.HTTPError as exc:
                last_error = exc
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES:
                    logger.error("Asset request failed status=%s url=%s", status_code, url)
                    raise AssetFetchError(
                        f"HTTP error! status: {status_code}",
                        status_code=status_code,
                    ) from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
            logger.warning(
                "Asset request retry attempt=%s/%s wait_seconds=%.2f url=%s",
                attempt + 1,
                self._max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        logger.error("Asset request exhausted retries url=%s error=%s", url, last_error)
        raise AssetFetchError("Asset request failed after retries.") from last_error
