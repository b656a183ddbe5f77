from typing import Optional

from workspace_api.utils.query import Query

MY_CUSTOMER = "my_customer"
DIRECTORY_MAX_RESULTS = 500
DIRECTORY_DEFAULT_RESULTS = 100


class DirectoryQuery(Query):
    customer: Optional[str] = None
    domain: Optional[str] = None
    max_results: Optional[int] = None
    order_by: Optional[str] = None
    page_token: Optional[str] = None
    projection: Optional[str] = None
    query: Optional[str] = None
    show_deleted: Optional[bool] = None
    sort_order: Optional[str] = None

    def validate_query(self):
        q = self.model_copy()
        if q.customer and q.domain:
            raise ValueError("cannot specify both customer and domain")
        if not q.customer and not q.domain:
            q.customer = MY_CUSTOMER
        if q.max_results is None or q.max_results == 0:
            q.max_results = DIRECTORY_DEFAULT_RESULTS
        if q.max_results > DIRECTORY_MAX_RESULTS:
            raise ValueError(f"maxResults cannot exceed {DIRECTORY_MAX_RESULTS}")
        return q
