from pydantic import BaseModel, Field, field_validator


class RedirectRules(BaseModel):
    default_status_code: int = 301
    allowed_status_codes: list[int] = Field(default_factory=lambda: [301, 302, 307, 308])
    gone_status_code: int = 410
    max_chain_depth: int = Field(default=10, ge=1, le=100)
    allowed_url_schemes: list[str] = Field(default_factory=lambda: ["http", "https"])
    warn_on_insecure_scheme: bool = True
    notes_max_length: int = Field(default=1000, ge=0)

    @field_validator("allowed_url_schemes")
    @classmethod
    def _lowercase_schemes(cls, value: list[str]) -> list[str]:
        return [scheme.lower() for scheme in value]

    @field_validator("default_status_code")
    @classmethod
    def _known_redirect_code(cls, value: int) -> int:
        if value not in (301, 302, 307, 308):
            raise ValueError("default_status_code must be 301, 302, 307 or 308")
        return value


class CacheRules(BaseModel):
    enabled: bool = True
    ttl_seconds: int = Field(default=60, ge=0)
    max_entries: int = Field(default=10_000, ge=1)


class StorageRules(BaseModel):
    timeout_seconds: float = Field(default=5.0, gt=0)


class Rules(BaseModel):
    redirects: RedirectRules = Field(default_factory=RedirectRules)
    cache: CacheRules = Field(default_factory=CacheRules)
    storage: StorageRules = Field(default_factory=StorageRules)
