from datetime import date
from typing import Any, Dict, List, Optional

from workspace_api.utils.query import Query
from workspace_api.utils.fanout import fan_out
from workspace_api.utils.logger import app_logger as logger

DIRECTORY_CUSTOMERS = "https://admin.googleapis.com/admin/directory/v1/customers"
DIRECTORY_ROLES = "https://admin.googleapis.com/admin/directory/v1/customer/{customer}/roles"
DIRECTORY_ROLE_ASSIGNMENTS = (
    "https://admin.googleapis.com/admin/directory/v1/customer/{customer}/roleassignments"
)

CUSTOMER_CACHE_TTL = 60 * 60

# System roles held by directory sync service accounts.
SKIPPED_ROLES = frozenset(
    {
        "_GCDS_DIRECTORY_MANAGEMENT_ROLE",
        "_LDAP_USER_MANAGEMENT_SUPPORT_ROLE",
        "_LDAP_USER_MANAGEMENT_READONLY_ROLE",
        "_LDAP_PASSWORD_REBIND_ROLE",
        "_LDAP_GROUP_MANAGEMENT_READONLY_ROLE",
    }
)

ROLE_REPORT_HEADERS = ["Name", "Email", "Role", "Last Login", "Org Unit Path", "Suspended", "Archived"]


class RoleAssignmentQuery(Query):
    max_results: Optional[int] = None
    page_token: Optional[str] = None
    role_id: Optional[str] = None
    user_key: Optional[str] = None
    include_indirect_role_assignments: Optional[bool] = None


class AdminClient:
    def __init__(self, client) -> None:
        self.client = client

    def my_customer(self) -> Dict[str, Any]:
        url = self.client.build_url(DIRECTORY_CUSTOMERS, "my_customer")
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached
        customer = self.client.do("GET", url)
        self.client.set_cache(url, customer, CUSTOMER_CACHE_TTL)
        return customer

    def list_roles(self, customer: Any = None) -> Dict[str, Any]:
        logger.info("Getting all roles...")
        url = self.client.build_url(DIRECTORY_ROLES, customer=customer)
        return self.client.do_paginated("GET", url, items_key="items")

    def get_role(self, customer: Any, role_id: str) -> Dict[str, Any]:
        url = self.client.build_url(DIRECTORY_ROLES, role_id, customer=customer)
        return self.client.do("GET", url)

    def list_role_assignments(
        self, customer: Any = None, role_id: Optional[str] = None
    ) -> Dict[str, Any]:
        if role_id:
            logger.debug(f"Getting assignments for role {role_id}")
        else:
            logger.info("Getting all role assignments...")
        url = self.client.build_url(DIRECTORY_ROLE_ASSIGNMENTS, customer=customer)
        q = RoleAssignmentQuery(role_id=role_id)
        return self.client.do_paginated("GET", url, query=q.to_params(), items_key="items")

    def users_from_role_assignments(self, assignments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Look up the user behind each assignment, at most MAX_WORKERS at a time."""
        user_ids = list(
            dict.fromkeys(
                a["assignedTo"]
                for a in assignments
                if a.get("assigneeType", "user") == "user"
            )
        )
        return fan_out(
            self.client.users.get, user_ids, max_workers=self.client.settings.MAX_WORKERS
        )

    def generate_role_report(
        self, customer: Any = None, role_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Build one {"role", "users"} entry per admin role.

        Assignments for every role are fetched concurrently, then every distinct
        assignee is resolved once and shared between the roles it holds.
        """
        if role_id:
            roles = [self.get_role(customer, role_id)]
        else:
            roles = [
                role
                for role in self.list_roles(customer)["items"]
                if role.get("roleName") not in SKIPPED_ROLES
            ]
        logger.info(f"Generating role report for {len(roles)} roles")

        max_workers = self.client.settings.MAX_WORKERS
        assignments = fan_out(
            lambda role: self.list_role_assignments(customer, role["roleId"])["items"],
            roles,
            max_workers=max_workers,
        )
        all_assignments = [a for role_assignments in assignments for a in role_assignments]
        users = {}
        for user in self.users_from_role_assignments(all_assignments):
            users[user["id"]] = user
            if user.get("primaryEmail"):
                users[user["primaryEmail"]] = user

        reports = []
        for role, role_assignments in zip(roles, assignments):
            role_users = []
            seen = set()
            for assignment in role_assignments:
                user = users.get(assignment["assignedTo"])
                if user is not None and user["id"] not in seen:
                    seen.add(user["id"])
                    role_users.append(user)
            reports.append({"role": role, "users": role_users})
        return reports

    @staticmethod
    def role_report_rows(reports: List[Dict[str, Any]]) -> List[List[str]]:
        rows = [list(ROLE_REPORT_HEADERS)]
        for report in reports:
            for user in report["users"]:
                rows.append(
                    [
                        user.get("name", {}).get("fullName", ""),
                        user.get("primaryEmail", ""),
                        report["role"].get("roleName", ""),
                        user.get("lastLoginTime", ""),
                        user.get("orgUnitPath", ""),
                        str(user.get("suspended", False)).lower(),
                        str(user.get("archived", False)).lower(),
                    ]
                )
        return rows

    def save_role_report(self, reports: List[Dict[str, Any]]) -> Dict[str, Any]:
        rows = self.role_report_rows(reports)
        logger.info("Creating new spreadsheet for role report")
        spreadsheet = self.client.sheets.create_spreadsheet(
            {"properties": {"title": f"Role Report {date.today().isoformat()}"}}
        )
        logger.info("Saving role report to spreadsheet")
        self.client.sheets.update_values(spreadsheet["spreadsheetId"], {"values": rows})
        return spreadsheet
