from typing import Any, Dict, Optional

from workspace_api.google.query import DIRECTORY_MAX_RESULTS, DirectoryQuery
from workspace_api.utils.logger import app_logger as logger

DIRECTORY_USERS = "https://admin.googleapis.com/admin/directory/v1/users"

USERS_CACHE_TTL = 30 * 60


class UserQuery(DirectoryQuery):
    custom_field_mask: Optional[str] = None
    event: Optional[str] = None
    view_type: Optional[str] = None


class UsersClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_all(self) -> Dict[str, Any]:
        logger.info("Getting all users...")
        url = self.client.build_url(DIRECTORY_USERS)
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        q = UserQuery().validate_query()
        q.max_results = DIRECTORY_MAX_RESULTS
        q.projection = "basic"
        users = self.client.do_paginated("GET", url, query=q.to_params(), items_key="users")
        logger.debug(f"Users found: {len(users['users'])}")

        self.client.set_cache(url, users, USERS_CACHE_TTL)
        return users

    def search(self, query: UserQuery) -> Dict[str, Any]:
        q = query.validate_query()
        url = self.client.build_url(DIRECTORY_USERS)
        return self.client.do_paginated("GET", url, query=q.to_params(), items_key="users")

    def get(self, user_key: str) -> Dict[str, Any]:
        url = self.client.build_url(DIRECTORY_USERS, user_key)
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        user = self.client.do("GET", url)
        self.client.set_cache(url, user, USERS_CACHE_TTL)
        return user

    def update(self, user_key: str, user: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"Updating user {user_key}")
        url = self.client.build_url(DIRECTORY_USERS, user_key)
        updated = self.client.do("PUT", url, body=user)
        self.client.cache.delete(url)
        return updated
