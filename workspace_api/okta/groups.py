from typing import Any, Dict, List, Optional

from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.query import Query

OKTA_GROUPS = "{base_url}/groups"
OKTA_GROUP_RULES = "{base_url}/groups/rules"


class GroupQuery(Query):
    q: Optional[str] = None
    after: Optional[str] = None
    expand: Optional[str] = None
    filter: Optional[str] = None
    limit: Optional[int] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


class GroupsClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_all_groups(self) -> List[Dict[str, Any]]:
        logger.info("Getting all Okta groups...")
        url = self.client.build_url(OKTA_GROUPS)
        return self.client.do_paginated("GET", url, query=GroupQuery(limit=10000).to_params())

    def get_group(self, group_id: str) -> Dict[str, Any]:
        url = self.client.build_url(OKTA_GROUPS, group_id)
        return self.client.do("GET", url)

    def list_group_rules(self) -> List[Dict[str, Any]]:
        logger.info("Getting all Okta group rules...")
        url = self.client.build_url(OKTA_GROUP_RULES)
        return self.client.do_paginated("GET", url, query=GroupQuery(limit=50).to_params())
