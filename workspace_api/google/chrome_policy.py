import json
from datetime import date
from typing import Any, Dict, List, Optional

from workspace_api.utils.query import Query
from workspace_api.utils.logger import app_logger as logger

CHROME_POLICY_SCHEMAS = "https://chromepolicy.googleapis.com/v1/customers/{customer}/policySchemas"
CHROME_POLICIES = "https://chromepolicy.googleapis.com/v1/customers/{customer}/policies"

POLICY_SCHEMAS_CACHE_TTL = 60 * 60
RESOLVED_POLICIES_CACHE_TTL = 5 * 60

POLICY_REPORT_HEADERS = ["source", "target", "policyType", "policyApplication", "policySchema", "value"]

# schema filter -> label used in reports
POLICY_TYPES = {
    "users": ("chrome.users.*", "User & Browser Settings"),
    "devices": ("chrome.devices.*", "Device Settings"),
}


class ChromePolicyQuery(Query):
    filter: Optional[str] = None
    page_size: Optional[int] = None
    page_token: Optional[str] = None


class OrgUnitTarget:
    def __init__(self, id: str, name: str = "") -> None:
        self.id = id
        self.name = name

    def __repr__(self) -> str:
        return f"OrgUnitTarget({self.id}, {self.name})"

    def resource(self) -> str:
        return f"orgunits/{self.id.removeprefix('id:')}"


class GroupTarget:
    def __init__(self, id: str, name: str = "") -> None:
        self.id = id
        self.name = name

    def __repr__(self) -> str:
        return f"GroupTarget({self.id}, {self.name})"

    def resource(self) -> str:
        return f"groups/{self.id}"


class ChromePolicyClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_policy_schemas(self, customer: Any = None) -> Dict[str, Any]:
        logger.info("Getting all Chrome policy schemas...")
        url = self.client.build_url(CHROME_POLICY_SCHEMAS, customer=customer)
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        q = ChromePolicyQuery(page_size=1000)
        schemas = self.client.do_paginated("GET", url, query=q.to_params(), items_key="policySchemas")

        self.client.set_cache(url, schemas, POLICY_SCHEMAS_CACHE_TTL)
        return schemas

    def resolve_policies(self, customer: Any, target) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        """
        Resolve the user and device policies applied to `target`. Each group is
        split into policies set directly on the target and those it inherits.
        """
        logger.info(f"Resolving Chrome policies for {target.resource()}")
        url = self.client.build_url(CHROME_POLICIES, ":resolve", customer=customer)
        cache_key = f"{url}_{target.id}"
        cached, hit = self.client.get_cache(cache_key)
        if hit:
            return cached

        policies = {}
        for policy_type, (schema_filter, _) in POLICY_TYPES.items():
            request = {
                "policySchemaFilter": schema_filter,
                "policyTargetKey": {"targetResource": target.resource()},
                "pageSize": 1000,
            }
            resolved = self.client.do_paginated(
                "POST", url, body=request, items_key="resolvedPolicies"
            )["resolvedPolicies"]
            direct = []
            inherited = []
            for policy in resolved:
                source = policy.get("sourceKey", {}).get("targetResource", "")
                if target.resource() in source:
                    direct.append(policy)
                else:
                    inherited.append(policy)
            policies[policy_type] = {
                "resolvedPolicies": resolved,
                "direct": direct,
                "inherited": inherited,
            }

        self.client.set_cache(cache_key, policies, RESOLVED_POLICIES_CACHE_TTL)
        return policies

    @staticmethod
    def policy_report_rows(resolved: Dict[str, Dict[str, List[Dict[str, Any]]]]) -> List[List[str]]:
        rows = [list(POLICY_REPORT_HEADERS)]
        for policy_type, (_, label) in POLICY_TYPES.items():
            group = resolved.get(policy_type, {})
            for application, key in (("Locally Applied", "direct"), ("Inherited", "inherited")):
                for policy in group.get(key, []):
                    value = policy.get("value", {})
                    rows.append(
                        [
                            policy.get("sourceKey", {}).get("targetResource", ""),
                            policy.get("targetKey", {}).get("targetResource", ""),
                            label,
                            application,
                            value.get("policySchema", ""),
                            json.dumps(value.get("value", {}), indent=2, sort_keys=True),
                        ]
                    )
        return rows

    def save_policy_report(self, target) -> Dict[str, Any]:
        """Resolve the policies for `target` and write them to a new spreadsheet."""
        logger.info("Saving Chrome policy report to spreadsheet")
        customer = self.client.admin.my_customer()
        rows = self.policy_report_rows(self.resolve_policies(customer, target))
        spreadsheet = self.client.sheets.create_spreadsheet(
            {
                "properties": {
                    "title": f"Chrome Policy Report [{target.name or target.id}] {date.today().isoformat()}"
                },
                "sheets": [{"properties": {"title": target.id}}],
            }
        )
        sheet_title = spreadsheet["sheets"][0]["properties"]["title"]
        self.client.sheets.save_to_sheet(rows, spreadsheet["spreadsheetId"], sheet_title)
        return spreadsheet
