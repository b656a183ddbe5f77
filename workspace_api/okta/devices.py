from typing import Any, Dict, List, Optional

from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.query import Query

OKTA_DEVICES = "{base_url}/devices"

DEVICES_CACHE_TTL = 30 * 60

MANAGED_DEVICES_SEARCH = (
    'status eq "ACTIVE" AND (profile.platform eq "macOS" OR profile.platform eq "WINDOWS")'
)


class DeviceQuery(Query):
    after: Optional[str] = None
    limit: Optional[int] = None
    search: Optional[str] = None
    expand: Optional[str] = None


class DevicesClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_all_devices(self) -> List[Dict[str, Any]]:
        logger.info("Getting all Okta devices...")
        url = self.client.build_url(OKTA_DEVICES)
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        devices = self.client.do_paginated("GET", url)
        self.client.set_cache(url, devices, DEVICES_CACHE_TTL)
        return devices

    def list_devices(self, query: DeviceQuery) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_DEVICES)
        return self.client.do_paginated("GET", url, query=query.to_params())

    def list_managed_devices(self) -> List[Dict[str, Any]]:
        """Registered macOS and Windows devices with at least one MANAGED user."""
        devices = self.list_devices(
            DeviceQuery(limit=50, search=MANAGED_DEVICES_SEARCH, expand="user")
        )
        managed = []
        for device in devices:
            if not device.get("profile", {}).get("registered"):
                continue
            device_users = device.get("_embedded", {}).get("users", [])
            if any(u.get("managementStatus") == "MANAGED" for u in device_users):
                managed.append(device)
        logger.debug(f"Managed devices found: {len(managed)}")
        return managed

    def list_users_for_device(self, device_id: str) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_DEVICES, device_id, "users")
        return self.client.do("GET", url)
