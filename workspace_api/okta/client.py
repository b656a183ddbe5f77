from typing import Any, Dict, Hashable, Optional, Tuple

import requests

from workspace_api.okta.applications import ApplicationsClient
from workspace_api.okta.devices import DevicesClient
from workspace_api.okta.factors import FactorsClient
from workspace_api.okta.groups import GroupsClient
from workspace_api.okta.roles import RolesClient
from workspace_api.okta.users import UsersClient
from workspace_api.utils.cache import TTLCache
from workspace_api.utils.errors import ConfigurationError
from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.settings import Settings
from workspace_api.utils.transport import HTTPClient

BASE_URL = "https://{org_name}.{base}.com/api/v1"


class OktaClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.settings = settings if settings is not None else Settings()
        if not self.settings.OKTA_ORG_NAME:
            raise ConfigurationError("OKTA_ORG_NAME is not set")
        if not self.settings.OKTA_API_TOKEN:
            raise ConfigurationError("OKTA_API_TOKEN is not set")

        self.base_url = BASE_URL.format(
            org_name=self.settings.OKTA_ORG_NAME, base=self.settings.OKTA_BASE_URL
        )
        self.session = session if session is not None else requests.Session()
        self.http = HTTPClient(
            self.session,
            headers={
                "Authorization": f"SSWS {self.settings.OKTA_API_TOKEN}",
                "Accept": "application/json",
            },
            timeout=self.settings.REQUEST_TIMEOUT,
            max_retries=self.settings.MAX_RETRIES,
            wait_min=self.settings.RETRY_WAIT_MIN,
            wait_max=self.settings.RETRY_WAIT_MAX,
        )
        if cache is None:
            cache = TTLCache(
                max_items=self.settings.CACHE_MAX_ITEMS,
                refresh=self.settings.CACHE_REFRESH_SECONDS,
                enabled=self.settings.CACHE_ENABLED,
            )
        self.cache = cache
        self.users = UsersClient(self)
        self.groups = GroupsClient(self)
        self.devices = DevicesClient(self)
        self.applications = ApplicationsClient(self)
        self.factors = FactorsClient(self)
        self.roles = RolesClient(self)

    def __repr__(self) -> str:
        return f"OktaClient({self.base_url})"

    def build_url(self, template: str, *identifiers: str) -> str:
        url = template.format(base_url=self.base_url)
        for identifier in identifiers:
            url = f"{url}/{identifier}"
        return url

    def do(
        self,
        method: str,
        url: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        response = self.http.request(method, url, query=query, body=body)
        return self.http.decode(response)

    def do_paginated(
        self,
        method: str,
        url: str,
        query: Optional[Dict[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """
        Follow the `Link: <...>; rel="next"` header until it disappears. The
        next link already carries the query, so it is only sent on the first
        request. Array pages are concatenated; object pages have their list
        fields merged.
        """
        result = None
        page_count = 0
        seen = set()
        while url:
            if url in seen:
                logger.warning(f"Next link repeated ({url}), stopping pagination")
                break
            seen.add(url)
            response = self.http.request(method, url, query=query, body=body)
            page = self.http.decode(response)
            page_count += 1
            if isinstance(page, list):
                if result is None:
                    result = []
                result.extend(page)
            else:
                if result is None:
                    result = {}
                for key, value in page.items():
                    if isinstance(value, list):
                        result.setdefault(key, []).extend(value)
                    elif key not in result:
                        result[key] = value
            url = response.links.get("next", {}).get("url")
            query = None

        logger.debug(f"Fetched {page_count} page(s) from Okta")
        return result if result is not None else []

    def get_cache(self, key: Hashable) -> Tuple[Any, bool]:
        value, hit = self.cache.get(key)
        if hit:
            logger.trace(f"[Cached] {key}")
        return value, hit

    def set_cache(self, key: Hashable, value: Any, ttl: float) -> None:
        self.cache.set(key, value, ttl)

    def use_cache(self, enabled: bool = True) -> "OktaClient":
        self.cache.enabled = enabled
        return self
