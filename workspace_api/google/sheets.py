from typing import Any, Dict, List, Optional

from workspace_api.utils.query import Query
from workspace_api.utils.logger import app_logger as logger

SHEETS = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetValueQuery(Query):
    value_input_option: Optional[str] = None
    include_values_in_response: Optional[bool] = None
    response_value_render_option: Optional[str] = None
    response_date_time_render_option: Optional[str] = None


def verify_value_range(vr: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of the ValueRange with the default range and major dimension filled in."""
    if vr.get("values") is None:
        raise ValueError("ValueRange.values cannot be empty")
    vr = dict(vr)
    if not vr.get("range"):
        vr["range"] = "A:Z"
    if not vr.get("majorDimension"):
        vr["majorDimension"] = "ROWS"
    return vr


class SheetsClient:
    def __init__(self, client) -> None:
        self.client = client

    def create_spreadsheet(self, spreadsheet: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.info("Creating spreadsheet")
        created = self.client.do("POST", SHEETS, body=spreadsheet)
        logger.debug(f"Spreadsheet created: {created.get('spreadsheetId')}")
        return created

    def get_spreadsheet(self, spreadsheet_id: str) -> Dict[str, Any]:
        url = self.client.build_url(SHEETS, spreadsheet_id)
        return self.client.do("GET", url)

    def get_values(self, spreadsheet_id: str, value_range: str) -> Dict[str, Any]:
        url = self.client.build_url(SHEETS, spreadsheet_id, "values", value_range)
        return self.client.do("GET", url)

    def batch_get_values(self, spreadsheet_id: str, ranges: List[str]) -> Dict[str, Any]:
        url = self.client.build_url(SHEETS, spreadsheet_id, "values:batchGet")
        return self.client.do("GET", url, query={"ranges": ranges})

    def update_values(self, spreadsheet_id: str, vr: Dict[str, Any]) -> Dict[str, Any]:
        vr = verify_value_range(vr)
        q = SheetValueQuery(value_input_option="RAW")
        url = self.client.build_url(SHEETS, spreadsheet_id, "values", vr["range"])
        return self.client.do("PUT", url, query=q.to_params(), body=vr)

    def append_values(self, spreadsheet_id: str, vr: Dict[str, Any]) -> Dict[str, Any]:
        vr = verify_value_range(vr)
        q = SheetValueQuery(value_input_option="RAW")
        url = self.client.build_url(SHEETS, spreadsheet_id, "values", vr["range"], ":append")
        return self.client.do("POST", url, query=q.to_params(), body=vr)

    def save_to_sheet(
        self, values: List[List[Any]], spreadsheet_id: str, sheet_title: str
    ) -> Dict[str, Any]:
        logger.info(f"Saving {len(values)} rows to sheet {sheet_title} of {spreadsheet_id}")
        vr = {"range": f"'{sheet_title}'!A1", "values": values}
        return self.update_values(spreadsheet_id, vr)
