from typing import Any, List, Tuple, Type

from pydantic import EmailStr, Field, field_validator, model_validator
from pydantic.fields import FieldInfo

from pydantic_settings import (
    BaseSettings,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
)

AUTH_TYPES = ("api_key", "oauth_client", "service_account")


class CommaListSource(EnvSettingsSource):
    def prepare_field_value(
        self, field_name: str, field: FieldInfo, value: Any, value_is_complex: bool
    ) -> Any:
        if field_name == "GOOGLE_SCOPES":
            if value:
                return [x.strip() for x in value.split(",") if x.strip()]
            else:
                return []
        return value if value else field.default


class Settings(BaseSettings):
    LOG_LEVEL: str = Field("INFO")

    GOOGLE_AUTH_TYPE: str = Field("service_account")
    GOOGLE_CREDENTIALS_FILE: str | None = Field(None)
    GOOGLE_SERVICE_ACCOUNT: str | None = Field(None)
    GOOGLE_OAUTH_CLIENT: str | None = Field(None)
    GOOGLE_API_KEY: str | None = Field(None)
    GOOGLE_CICD: bool = Field(False)
    GOOGLE_SCOPES: List[str] = Field([])
    GOOGLE_SUBJECT: EmailStr | None = Field(None)
    GOOGLE_CUSTOMER_ID: str = Field("my_customer")

    OKTA_ORG_NAME: str | None = Field(None)
    OKTA_BASE_URL: str = Field("okta")
    OKTA_API_TOKEN: str | None = Field(None)

    CACHE_ENABLED: bool = Field(True)
    CACHE_MAX_ITEMS: int = Field(1000)
    CACHE_REFRESH_SECONDS: int = Field(60)

    MAX_WORKERS: int = Field(10)
    MAX_RETRIES: int = Field(3)
    RETRY_WAIT_MIN: float = Field(2)
    RETRY_WAIT_MAX: float = Field(5)
    REQUEST_TIMEOUT: float = Field(60)

    REPORT_OUTPUT: str = Field("reports/role_report.json")
    REPORT_TO_SHEET: bool = Field(False)

    @field_validator("CACHE_MAX_ITEMS", "MAX_WORKERS", "MAX_RETRIES", "REQUEST_TIMEOUT")
    def validate_positive_values(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v

    @field_validator("CACHE_REFRESH_SECONDS", "RETRY_WAIT_MIN", "RETRY_WAIT_MAX")
    def validate_non_negative_values(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @field_validator("GOOGLE_AUTH_TYPE")
    def validate_auth_type(cls, v, info):
        v = v.lower()
        if v not in AUTH_TYPES:
            raise ValueError(f"{info.field_name} must be one of {', '.join(AUTH_TYPES)}")
        return v

    @field_validator("OKTA_ORG_NAME")
    def normalize_okta_org(cls, v, info):
        if not v:
            return None
        v = v.removeprefix("https://").removeprefix("http://")
        return v.removesuffix("/").removesuffix(".okta.com")

    @field_validator("OKTA_BASE_URL")
    def normalize_okta_base(cls, v, info):
        return v.strip("./").removesuffix(".com")

    @model_validator(mode="after")
    def validate_retry_window(self):
        if self.RETRY_WAIT_MAX < self.RETRY_WAIT_MIN:
            raise ValueError("RETRY_WAIT_MAX must not be lower than RETRY_WAIT_MIN")
        return self

    @property
    def okta_configured(self) -> bool:
        return bool(self.OKTA_ORG_NAME and self.OKTA_API_TOKEN)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, CommaListSource(settings_cls))
