from typing import Any, Dict, Optional

from workspace_api.utils.query import Query
from workspace_api.utils.logger import app_logger as logger

DIRECTORY_CHROMEOS_DEVICES = (
    "https://admin.googleapis.com/admin/directory/v1/customer/{customer}/devices/chromeos"
)
DIRECTORY_MOBILE_DEVICES = (
    "https://admin.googleapis.com/admin/directory/v1/customer/{customer}/devices/mobile"
)

DEVICES_PAGE_SIZE = 500


class DeviceQuery(Query):
    include_child_orgunits: Optional[bool] = None
    max_results: Optional[int] = None
    order_by: Optional[str] = None
    org_unit_path: Optional[str] = None
    page_token: Optional[str] = None
    projection: Optional[str] = None
    query: Optional[str] = None
    sort_order: Optional[str] = None


class DevicesClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_chromeos(
        self, customer: Any = None, query: Optional[DeviceQuery] = None
    ) -> Dict[str, Any]:
        logger.info("Getting all ChromeOS devices...")
        q = query if query is not None else DeviceQuery(max_results=DEVICES_PAGE_SIZE)
        url = self.client.build_url(DIRECTORY_CHROMEOS_DEVICES, customer=customer)
        return self.client.do_paginated(
            "GET", url, query=q.to_params(), items_key="chromeosdevices"
        )

    def list_provisioned_chromeos(self, customer: Any = None) -> Dict[str, Any]:
        q = DeviceQuery(max_results=DEVICES_PAGE_SIZE, query="status:provisioned")
        return self.list_chromeos(customer, q)

    def list_mobile(
        self, customer: Any = None, query: Optional[DeviceQuery] = None
    ) -> Dict[str, Any]:
        logger.info("Getting all mobile devices...")
        q = query if query is not None else DeviceQuery(max_results=DEVICES_PAGE_SIZE)
        url = self.client.build_url(DIRECTORY_MOBILE_DEVICES, customer=customer)
        return self.client.do_paginated("GET", url, query=q.to_params(), items_key="mobiledevices")
