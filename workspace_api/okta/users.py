from typing import Any, Dict, List, Optional

from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.query import Query

OKTA_USERS = "{base_url}/users"

USERS_CACHE_TTL = 30 * 60

ALL_STATUSES = (
    'status eq "STAGED" or status eq "PROVISIONED" or status eq "ACTIVE" or '
    'status eq "RECOVERY" or status eq "LOCKED_OUT" or status eq "PASSWORD_EXPIRED" or '
    'status eq "SUSPENDED" or status eq "DEPROVISIONED"'
)


class UserQuery(Query):
    q: Optional[str] = None
    after: Optional[str] = None
    limit: Optional[int] = None
    filter: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


class UsersClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_all_users(self) -> List[Dict[str, Any]]:
        """Every user regardless of status. DEPROVISIONED users are only returned when searched for."""
        logger.info("Getting all Okta users...")
        url = self.client.build_url(OKTA_USERS)
        q = UserQuery(limit=200, search=ALL_STATUSES)
        return self.client.do_paginated("GET", url, query=q.to_params())

    def list_active_users(self) -> List[Dict[str, Any]]:
        logger.info("Getting active Okta users...")
        url = self.client.build_url(OKTA_USERS)
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        q = UserQuery(limit=200, search='status eq "ACTIVE"')
        users = self.client.do_paginated("GET", url, query=q.to_params())
        logger.debug(f"Active users found: {len(users)}")

        self.client.set_cache(url, users, USERS_CACHE_TTL)
        return users

    def get_user(self, user_id: str) -> Dict[str, Any]:
        url = self.client.build_url(OKTA_USERS, user_id)
        return self.client.do("GET", url)

    def update_user(self, user_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"Updating Okta user {user_id}")
        url = self.client.build_url(OKTA_USERS, user_id)
        return self.client.do("POST", url, body=user)

    def get_user_groups(self, user_id: str) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_USERS, user_id, "groups")
        return self.client.do_paginated("GET", url)

    def get_user_app_links(self, user_id: str) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_USERS, user_id, "appLinks")
        return self.client.do("GET", url)
