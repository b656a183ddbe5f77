from typing import Any, Dict, List, Optional

from workspace_api.okta.users import OKTA_USERS
from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.query import Query

FACTORS_CACHE_TTL = 5 * 60


class FactorQuery(Query):
    activate: Optional[bool] = None
    remove_revoked_enrollment: Optional[bool] = None
    template_id: Optional[str] = None
    token_lifetime: Optional[int] = None
    update_phone: Optional[bool] = None


class FactorsClient:
    def __init__(self, client) -> None:
        self.client = client

    def list_enrolled_factors(self, user_id: str) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_USERS, user_id, "factors")
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        factors = self.client.do("GET", url)
        self.client.set_cache(url, factors, FACTORS_CACHE_TTL)
        return factors

    def list_supported_factors(self, user_id: str) -> List[Dict[str, Any]]:
        url = self.client.build_url(OKTA_USERS, user_id, "factors", "catalog")
        cached, hit = self.client.get_cache(url)
        if hit:
            return cached

        factors = self.client.do("GET", url)
        self.client.set_cache(url, factors, FACTORS_CACHE_TTL)
        return factors

    def enroll_factor(
        self, user_id: str, factor: Dict[str, Any], query: Optional[FactorQuery] = None
    ) -> Dict[str, Any]:
        logger.info(f"Enrolling {factor.get('factorType')} factor for Okta user {user_id}")
        url = self.client.build_url(OKTA_USERS, user_id, "factors")
        params = query.to_params() if query is not None else None
        enrolled = self.client.do("POST", url, query=params, body=factor)
        self.client.cache.delete(url)
        return enrolled

    def reset_factors(self, user_id: str) -> None:
        logger.info(f"Resetting all factors for Okta user {user_id}")
        url = self.client.build_url(OKTA_USERS, user_id, "lifecycle", "resetFactors")
        self.client.do("POST", url)
        self.client.cache.delete(self.client.build_url(OKTA_USERS, user_id, "factors"))
