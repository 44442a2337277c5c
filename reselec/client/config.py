# reselec/client/config.py

import os
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STATE_DIR = os.path.join(os.path.expanduser("~"), ".reselec")


class ClientSettings(BaseSettings):
    """
    SDK settings, read from `RESELEC_*` environment variables (e.g. RESELEC_API_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="RESELEC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_URL: str = Field("http://localhost:8000/api/v1", description="Base URL of the API, prefix included")
    TIMEOUT: float = Field(10.0, gt=0, description="HTTP timeout in seconds")
    SESSION_FILE: str = Field(
        os.path.join(DEFAULT_STATE_DIR, "session.json"),
        description="Where the token and user of the last session are kept",
    )
    OFFLINE_QUEUE_FILE: str = Field(
        os.path.join(DEFAULT_STATE_DIR, "offline_queue.json"),
        description="Where actions made while offline are kept until replayed",
    )
