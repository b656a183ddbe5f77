from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Query(BaseModel):
    """Query parameters serialized with the camelCase names the REST APIs expect."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_params(self) -> Dict[str, Any]:
        params = {}
        for key, value in self.model_dump(by_alias=True, exclude_none=True).items():
            if value == "" or value == [] or value is False:
                continue
            params[key] = value
        return params

    def is_empty(self) -> bool:
        return not self.to_params()
