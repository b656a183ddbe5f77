from typing import Any, Dict, Optional

from workspace_api.google.query import DIRECTORY_MAX_RESULTS, DirectoryQuery
from workspace_api.utils.query import Query
from workspace_api.utils.logger import app_logger as logger

DIRECTORY_GROUPS = "https://admin.googleapis.com/admin/directory/v1/groups"

GROUPS_CACHE_TTL = 30 * 60


class GroupsQuery(DirectoryQuery):
    # Lists only the groups this user belongs to. Excludes `customer`.
    user_key: Optional[str] = None

    def validate_query(self):
        if self.user_key:
            if self.customer:
                raise ValueError("cannot specify both userKey and customer")
            q = self.model_copy()
            if q.max_results is None or q.max_results == 0:
                q.max_results = 100
            if q.max_results > DIRECTORY_MAX_RESULTS:
                raise ValueError(f"maxResults cannot exceed {DIRECTORY_MAX_RESULTS}")
            return q
        return super().validate_query()


class MembersQuery(Query):
    include_derived_membership: Optional[bool] = None
    max_results: Optional[int] = None
    page_token: Optional[str] = None
    roles: Optional[str] = None


class GroupsClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_all(self) -> Dict[str, Any]:
        logger.info("Getting all groups...")
        url = self.client.build_url(DIRECTORY_GROUPS)
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        q = GroupsQuery().validate_query()
        q.max_results = DIRECTORY_MAX_RESULTS
        groups = self.client.do_paginated("GET", url, query=q.to_params(), items_key="groups")
        logger.debug(f"Groups found: {len(groups['groups'])}")

        self.client.set_cache(url, groups, GROUPS_CACHE_TTL)
        return groups

    def search(self, query: GroupsQuery) -> Dict[str, Any]:
        q = query.validate_query()
        url = self.client.build_url(DIRECTORY_GROUPS)
        return self.client.do_paginated("GET", url, query=q.to_params(), items_key="groups")

    def get(self, group_key: str) -> Dict[str, Any]:
        url = self.client.build_url(DIRECTORY_GROUPS, group_key)
        return self.client.do("GET", url)

    def update(self, group_key: str, group: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"Updating group {group_key}")
        url = self.client.build_url(DIRECTORY_GROUPS, group_key)
        return self.client.do("PUT", url, body=group)

    def list_members(
        self, group_key: str, query: Optional[MembersQuery] = None
    ) -> Dict[str, Any]:
        logger.info(f"Getting members of group {group_key}")
        q = query if query is not None else MembersQuery(max_results=200)
        url = self.client.build_url(DIRECTORY_GROUPS, group_key, "members")
        return self.client.do_paginated("GET", url, query=q.to_params(), items_key="members")
