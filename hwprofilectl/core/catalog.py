"""Catalog retrieval with an on-disk cache fallback."""

from __future__ import annotations

import logging
from http.client import HTTPException
from pathlib import Path
from urllib.error import URLError
from urllib.request import Request, urlopen

from hwprofilectl.core.config import Settings
from hwprofilectl.core.errors import CatalogCorruptError, FetchUnavailableError
from hwprofilectl.core.model import DomainSchema, Profile
from hwprofilectl.core.profile_parser import parse_catalog_text

LOGGER = logging.getLogger(__name__)


class CatalogCache:
    """Last successfully downloaded catalog body per domain, stored verbatim."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    def path_for(self, schema: DomainSchema) -> Path:
        return self.cache_dir / schema.cache_file

    def read(self, schema: DomainSchema) -> str | None:
        path = self.path_for(schema)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise CatalogCorruptError(f"Cached {schema.name} catalog {path} is not valid UTF-8: {exc}") from exc

    def write(self, schema: DomainSchema, body: str) -> None:
        path = self.path_for(schema)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")


class CatalogFetcher:
    def __init__(self, settings: Settings, cache: CatalogCache | None = None) -> None:
        self.settings = settings
        self.cache = cache or CatalogCache(settings.cache_dir)

    def _download(self, url: str) -> str:
        request = Request(url, method="GET")
        with urlopen(request, timeout=self.settings.fetch_timeout_s) as response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise URLError(f"unexpected HTTP status {status}")
            return response.read().decode("utf-8")

    def fetch_raw(self, schema: DomainSchema) -> str:
        url = self.settings.catalog_url(schema.name)
        LOGGER.info("Downloading %s profile catalog", schema.name)
        try:
            if not url:
                raise URLError(f"no catalog URL configured for {schema.name}")
            body = self._download(url)
        except (OSError, ValueError, HTTPException) as exc:
            LOGGER.warning("Downloading %s profile catalog failed: %s", schema.name, exc)
            return self._from_cache(schema)

        LOGGER.info("Downloaded %s profile catalog", schema.name)
        try:
            self.cache.write(schema, body)
        except OSError as exc:
            LOGGER.warning("Could not update catalog cache %s: %s", self.cache.path_for(schema), exc)
        return body

    def _from_cache(self, schema: DomainSchema) -> str:
        path = self.cache.path_for(schema)
        try:
            cached = self.cache.read(schema)
        except OSError as exc:
            raise FetchUnavailableError(
                f"Could not download the {schema.name} catalog and the cache {path} is unreadable: {exc}"
            ) from exc
        if cached is None:
            raise FetchUnavailableError(
                f"Could not download the {schema.name} catalog and no cache exists at {path}"
            )
        LOGGER.info("Using cached %s profile catalog from %s", schema.name, path)
        return cached

    def fetch(self, schema: DomainSchema) -> tuple[Profile, ...]:
        return parse_catalog_text(self.fetch_raw(schema), schema, self.settings.locale)
