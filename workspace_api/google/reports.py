from typing import Any, Dict, Optional

from workspace_api.utils.query import Query
from workspace_api.utils.errors import NotFoundError
from workspace_api.utils.logger import app_logger as logger

REPORTS_ACTIVITIES = "https://admin.googleapis.com/admin/reports/v1/activity/users/{user_key}/applications/{application}"


class ReportsQuery(Query):
    actor_ip_address: Optional[str] = None
    customer_id: Optional[str] = None
    end_time: Optional[str] = None
    event_name: Optional[str] = None
    filters: Optional[str] = None
    max_results: Optional[int] = None
    org_unit_id: Optional[str] = None
    page_token: Optional[str] = None
    start_time: Optional[str] = None
    group_id_filter: Optional[str] = None


class ReportsClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_activities(
        self,
        user_key: str = "all",
        application: str = "drive",
        query: Optional[ReportsQuery] = None,
    ) -> Dict[str, Any]:
        logger.info(f"Getting {application} activities for {user_key}")
        url = REPORTS_ACTIVITIES.format(user_key=user_key, application=application)
        q = query if query is not None else ReportsQuery()
        return self.client.do_paginated("GET", url, query=q.to_params(), items_key="items")

    def get_file_ownership(self, file_id: str) -> str:
        """Find the owner of a Drive file from the most recent Drive audit event."""
        logger.info(f"Getting ownership of file {file_id}")
        url = REPORTS_ACTIVITIES.format(user_key="all", application="drive")
        q = ReportsQuery(filters=f"doc_id=={file_id}", max_results=1)
        report = self.client.do("GET", url, query=q.to_params())

        items = report.get("items") or []
        if not items:
            raise NotFoundError(f"no events found for file {file_id}")
        for event in items[0].get("events", []):
            for param in event.get("parameters", []):
                if param.get("name") == "owner":
                    logger.debug(f"Owner of {file_id}: {param.get('value')}")
                    return param.get("value")
        raise NotFoundError(f"no owner found for file {file_id}")
