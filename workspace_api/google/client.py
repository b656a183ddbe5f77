import copy
from typing import Any, Dict, Hashable, Optional, Tuple

import requests

from workspace_api.google.auth import GoogleAuth
from workspace_api.google.admin import AdminClient
from workspace_api.google.browsers import BrowsersClient
from workspace_api.google.chrome_policy import ChromePolicyClient
from workspace_api.google.devices import DevicesClient
from workspace_api.google.drive import DriveClient
from workspace_api.google.groups import GroupsClient
from workspace_api.google.reports import ReportsClient
from workspace_api.google.sheets import SheetsClient
from workspace_api.google.users import UsersClient
from workspace_api.utils.cache import TTLCache
from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.settings import Settings
from workspace_api.utils.transport import HTTPClient

GResource = Dict[str, Any]


class GoogleClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        auth: Optional[GoogleAuth] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.settings = settings if settings is not None else Settings()
        self.auth = auth if auth is not None else GoogleAuth.from_settings(self.settings)
        self.session = session if session is not None else self.auth.session()
        self.http = HTTPClient(
            self.session,
            headers={"Accept": "application/json"},
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
        self._users = None
        self._groups = None
        self._devices = None
        self._drive = None
        self._sheets = None
        self._chrome_policy = None
        self._reports = None
        self._admin = None
        self._browsers = None

    def __repr__(self) -> str:
        return f"GoogleClient({self.auth!r})"

    def customer_id(self, customer: Any = None) -> str:
        if customer is None:
            return self.settings.GOOGLE_CUSTOMER_ID
        if isinstance(customer, dict):
            return customer["id"]
        return customer

    def build_url(self, template: str, *identifiers: str, customer: Any = None) -> str:
        """
        Fill `{customer}` in the template and append each identifier as a path
        segment. Identifiers starting with ":" are custom methods (":resolve")
        and are joined without a slash.
        """
        url = template
        if "{customer}" in url:
            url = url.format(customer=self.customer_id(customer))
        for identifier in identifiers:
            identifier = str(identifier)
            if identifier.startswith(":"):
                url = f"{url}{identifier}"
            else:
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
        items_key: Optional[str] = None,
    ) -> GResource:
        """
        Follow `nextPageToken` until it runs out and merge every page into one
        result. With `items_key` only that field is concatenated, otherwise
        every list-valued field is. Scalar fields keep their first-page value.
        """
        query = dict(query or {})
        body = copy.deepcopy(body)
        token_in_body = isinstance(body, dict) and method.upper() != "GET"
        result: GResource = {}
        if items_key is not None:
            result[items_key] = []

        page_count = 0
        previous_token = None
        while True:
            page = self.do(method, url, query=query, body=body)
            page_count += 1
            token = page.pop("nextPageToken", None)
            for key, value in page.items():
                concat = key == items_key if items_key is not None else isinstance(value, list)
                if concat and isinstance(value, list):
                    result.setdefault(key, []).extend(value)
                elif key not in result:
                    result[key] = value
            if not token:
                break
            if token == previous_token:
                logger.warning(f"Page token repeated for {url}, stopping pagination")
                break
            previous_token = token
            if token_in_body:
                body = {**body, "pageToken": token}
            else:
                query["pageToken"] = token

        logger.debug(f"Fetched {page_count} page(s) from {url}")
        return result

    def get_cache(self, key: Hashable) -> Tuple[Any, bool]:
        value, hit = self.cache.get(key)
        if hit:
            logger.trace(f"Cache hit: {key}")
        return value, hit

    def set_cache(self, key: Hashable, value: Any, ttl: float) -> None:
        self.cache.set(key, value, ttl)

    def use_cache(self, enabled: bool = True) -> "GoogleClient":
        self.cache.enabled = enabled
        return self

    def impersonate(self, email: str) -> "GoogleClient":
        return GoogleClient(
            settings=self.settings, auth=self.auth.impersonate(email), cache=self.cache
        )

    @property
    def users(self):
        if self._users is None:
            self._users = UsersClient(self)
        return self._users

    @property
    def groups(self):
        if self._groups is None:
            self._groups = GroupsClient(self)
        return self._groups

    @property
    def devices(self):
        if self._devices is None:
            self._devices = DevicesClient(self)
        return self._devices

    @property
    def drive(self):
        if self._drive is None:
            self._drive = DriveClient(self)
        return self._drive

    @property
    def sheets(self):
        if self._sheets is None:
            self._sheets = SheetsClient(self)
        return self._sheets

    @property
    def chrome_policy(self):
        if self._chrome_policy is None:
            self._chrome_policy = ChromePolicyClient(self)
        return self._chrome_policy

    @property
    def reports(self):
        if self._reports is None:
            self._reports = ReportsClient(self)
        return self._reports

    @property
    def admin(self):
        if self._admin is None:
            self._admin = AdminClient(self)
        return self._admin

    @property
    def browsers(self):
        if self._browsers is None:
            self._browsers = BrowsersClient(self)
        return self._browsers
