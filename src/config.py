from __future__ import annotations

from pydantic_settings import BaseSettings

# Values shipped in the sample .env start with this prefix until replaced
PLACEHOLDER_PREFIX = "YOUR_"


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "BET_TRACKER_",
        "extra": "ignore",
    }

    # Remote (PostgREST / Supabase)
    remote_url: str = "YOUR_SUPABASE_URL"
    remote_api_key: str = "YOUR_SUPABASE_ANON_KEY"
    remote_rest_path: str = "/rest/v1"
    remote_timeout_sec: float = 15.0

    # Local store
    local_db_path: str = ""  # 空なら data/bet_tracker.db

    # Logging
    log_dir: str = ""  # 空なら data/logs
    structured_logging: bool = False

    # Profile seeded into a fresh local store
    default_profile_name: str = "Main"
    default_profile_color: str = "#3b82f6"
    default_profile_icon: str = "fa-user"

    @property
    def remote_configured(self) -> bool:
        """Both remote values are set and neither is still a placeholder."""
        for value in (self.remote_url, self.remote_api_key):
            if not value or value.startswith(PLACEHOLDER_PREFIX):
                return False
        return True


settings = Settings()
