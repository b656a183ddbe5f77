from typing import Any, Dict, List, Optional

from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.query import Query

OKTA_APPS = "{base_url}/apps"


class AppQuery(Query):
    q: Optional[str] = None
    after: Optional[str] = None
    limit: Optional[int] = None
    filter: Optional[str] = None
    expand: Optional[str] = None
    include_non_deleted: Optional[bool] = None


class ApplicationsClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_all_applications(self, query: Optional[AppQuery] = None) -> List[Dict[str, Any]]:
        logger.info("Getting all Okta applications...")
        url = self.client.build_url(OKTA_APPS)
        q = query if query is not None else AppQuery()
        return self.client.do_paginated("GET", url, query=q.to_params())
