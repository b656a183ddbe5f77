from typing import Any, Dict, List, Optional

from workspace_api.utils.query import Query
from workspace_api.utils.logger import app_logger as logger

DIRECTORY_CHROME_BROWSERS = (
    "https://www.googleapis.com/admin/directory/v1.1beta1/customer/{customer}/devices/chromebrowsers"
)

BROWSERS_MAX_RESULTS = 300


class BrowserQuery(Query):
    max_results: Optional[int] = None
    order_by: Optional[str] = None
    org_unit_path: Optional[str] = None
    page_token: Optional[str] = None
    projection: Optional[str] = None
    query: Optional[str] = None
    sort_order: Optional[str] = None

    def validate_query(self) -> "BrowserQuery":
        q = self.model_copy()
        if not q.max_results:
            q.max_results = 100
        if q.max_results > BROWSERS_MAX_RESULTS:
            raise ValueError(f"maxResults cannot exceed {BROWSERS_MAX_RESULTS}")
        if not q.projection:
            q.projection = "BASIC"
        return q


class BrowsersClient:
    """Chrome browsers enrolled with Chrome Browser Cloud Management."""

    def __init__(self, client) -> None:
        self.client = client

    def list_all(
        self, customer: Any = None, query: Optional[BrowserQuery] = None
    ) -> Dict[str, Any]:
        logger.info("Getting all Chrome browsers...")
        q = (query if query is not None else BrowserQuery()).validate_query()
        url = self.client.build_url(DIRECTORY_CHROME_BROWSERS, customer=customer)
        browsers = self.client.do_paginated("GET", url, query=q.to_params(), items_key="browsers")
        logger.debug(f"Browsers found: {len(browsers['browsers'])}")
        return browsers

    def get(self, device_id: str, customer: Any = None) -> Dict[str, Any]:
        url = self.client.build_url(DIRECTORY_CHROME_BROWSERS, device_id, customer=customer)
        return self.client.do("GET", url)

    def update(
        self, device_id: str, updates: Dict[str, Any], customer: Any = None
    ) -> Dict[str, Any]:
        """Update the annotated fields (user, location, asset id, notes) or the org unit."""
        logger.info(f"Updating Chrome browser {device_id}")
        url = self.client.build_url(DIRECTORY_CHROME_BROWSERS, device_id, customer=customer)
        return self.client.do("PUT", url, body=updates)

    def move_to_org_unit(
        self, device_ids: List[str], org_unit_path: str, customer: Any = None
    ) -> Dict[str, Any]:
        if not device_ids:
            raise ValueError("no browsers to move")
        logger.info(f"Moving {len(device_ids)} Chrome browsers to {org_unit_path}")
        url = self.client.build_url(
            DIRECTORY_CHROME_BROWSERS, "moveChromeBrowsersToOu", customer=customer
        )
        body = {"resource_ids": list(device_ids), "org_unit_path": org_unit_path}
        return self.client.do("POST", url, body=body)
