from pydantic import RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="IMPERIUM_")

    redis_url: RedisDsn = "redis://localhost:6379/0"  # type: ignore[assignment]
    request_stream: str = "imperium:simulate"
    result_stream: str = "imperium:results"
    session_key_prefix: str = "imperium:session"
    save_key: str = "imperium:save-v1"


REDIS_SETTINGS = RedisSettings()
