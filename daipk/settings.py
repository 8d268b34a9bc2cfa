from anystore.settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from daipk.model import Capacity


class Settings(BaseSettings):
    """
    `debug` and `log_level` come from the shared base settings and are read
    from `DEBUG` and `LOG_LEVEL` (without prefix).
    """

    model_config = SettingsConfigDict(
        env_prefix="daipk_",
        env_nested_delimiter="__",
        env_file=".env",
        nested_model_default_partial_update=True,
        extra="ignore",
    )

    redis_uri: str = "redis://localhost:6379/0"
    pool_size: int = 8
    lease_timeout: float | None = 30.0  # seconds

    separator: str = "-"
    capacity: Capacity = Capacity.I64
    max_shards: int = 1024
