from typing import Any, Dict, List

from workspace_api.okta.users import OKTA_USERS
from workspace_api.utils.fanout import fan_out
from workspace_api.utils.logger import app_logger as logger

OKTA_IAM = "{base_url}/iam"
OKTA_ROLES = "{base_url}/iam/roles"

USER_ROLES_CACHE_TTL = 30 * 60
ROLE_REPORT_CACHE_TTL = 60 * 60
ROLE_REPORT_CACHE_KEY = "Okta Role Report"

CUSTOM_ROLE_TYPE = "CUSTOM"


class RolesClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_roles(self) -> List[Dict[str, Any]]:
        """Custom roles only; standard roles are not listed by this endpoint."""
        url = self.client.build_url(OKTA_ROLES)
        return self.client.do_paginated("GET", url).get("roles", [])

    def get_role(self, role_id: str) -> Dict[str, Any]:
        url = self.client.build_url(OKTA_ROLES, role_id)
        return self.client.do("GET", url)

    def get_user_roles(self, user_id: str) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_USERS, user_id, "roles")
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        roles = self.client.do_paginated("GET", url)
        self.client.set_cache(url, roles, USER_ROLES_CACHE_TTL)
        return roles

    def list_users_with_role_assignments(self) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_IAM, "assignees", "users")
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        users = self.client.do_paginated("GET", url).get("value", [])
        self.client.set_cache(url, users, USER_ROLES_CACHE_TTL)
        return users

    def generate_role_report(self) -> List[Dict[str, Any]]:
        """
        Group active users by the roles they hold.

        Standard roles are reported by type as {"id": <type>, "type": "System"}.
        Custom roles come from the role list and collect the users whose
        assignment references them.
        """
        cached, hit = self.client.get_cache(ROLE_REPORT_CACHE_KEY)
        if hit:
            return cached

        users = self.client.users.list_active_users()
        logger.info(f"Getting roles for {len(users)} active users")
        user_roles = fan_out(
            lambda user: self.get_user_roles(user["id"]),
            users,
            max_workers=self.client.settings.MAX_WORKERS,
        )

        system_roles: Dict[str, List[Dict[str, Any]]] = {}
        custom_roles: Dict[str, List[Dict[str, Any]]] = {}
        for user, roles in zip(users, user_roles):
            for role in roles:
                if role.get("type") == CUSTOM_ROLE_TYPE:
                    custom_roles.setdefault(role.get("role", ""), []).append(user)
                else:
                    system_roles.setdefault(role["type"], []).append(user)

        reports = [
            {"role": {"id": role_type, "type": "System"}, "users": role_users}
            for role_type, role_users in system_roles.items()
        ]
        for role in self.list_roles():
            reports.append({"role": role, "users": custom_roles.get(role["id"], [])})

        self.client.set_cache(ROLE_REPORT_CACHE_KEY, reports, ROLE_REPORT_CACHE_TTL)
        return reports
