"""Pydantic settings loaded from .env."""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator


class Settings(BaseSettings):
    database_url: str = Field("./jwt_workbench.db")
    # Editing sessions start out signed with this secret
    default_secret: str = Field("your-256-bit-secret")
    default_exp_ttl_s: int = Field(3600)
    batch_concurrency: int = Field(8)
    log_level: str = Field("INFO")

    @model_validator(mode="after")
    def normalise(self) -> "Settings":
        self.log_level = self.log_level.strip().upper() or "INFO"
        if self.batch_concurrency < 1:
            self.batch_concurrency = 1
        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
