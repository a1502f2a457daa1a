"""Runtime settings, read from the environment."""

import os
from functools import lru_cache

from pydantic import BaseModel

DEFAULT_USER = "system"
DEFAULT_BRANCH = "main"
LOCAL_BASE_URL = "http://localhost:{{PORT}}"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    acting_user: str = os.getenv("API_SYNC_USER", DEFAULT_USER)
    default_branch: str = os.getenv("API_SYNC_DEFAULT_BRANCH", DEFAULT_BRANCH)
    local_base_url: str = os.getenv("API_SYNC_LOCAL_BASE_URL", LOCAL_BASE_URL)
    flatten_postman_folders: bool = _env_flag("API_SYNC_FLATTEN_POSTMAN")


@lru_cache
def get_settings() -> Settings:
    return Settings()
