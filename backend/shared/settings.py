"""Record sync configuration via environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class SyncSettings(BaseSettings):
    model_config = {"env_prefix": "SYNC_"}

    # SQLite file holding every local collection
    database_path: str = Field(default="backend/data/records.db", min_length=1)
    log_dir: str | None = None

    # Personal data server hosting the player's repository
    pds_url: str = "https://bsky.social"

    # Applied per remote call; there is no other timeout in the sync path.
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("pds_url")
    @classmethod
    def validate_pds_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("pds_url must be an http(s) URL")
        return v.rstrip("/")
