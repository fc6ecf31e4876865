# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import os
import logging
from pathlib import Path
from typing import Mapping, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer for {key}: {value!r}, using default {default}")
        return default

class Config:
    """Application configuration, read from environment variables."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        env = os.environ if env is None else env

        # Server
        self.HOST: str = env.get("APP_HOST", "0.0.0.0")
        self.PORT: int = _get_int(env, "APP_PORT", 8000)
        self.DEBUG: bool = env.get("FLASK_ENV") == "development" or _get_bool(env, "FLASK_DEBUG", False)
        self.VERBOSE: bool = env.get("DEBUG_LOGGING") is not None
        self.MAX_CONTENT_LENGTH: int = _get_int(env, "MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
        self.CORS_ORIGINS: str = env.get("CORS_ORIGINS", "*")

        # API authentication
        self.API_KEY: Optional[str] = env.get("API_KEY") or None

        # Git repository holding the Zola site
        self.REPO_DIR: Path = Path(env.get("REPO_DIR", "./data/site"))
        self.REPO_URL: Optional[str] = env.get("REPO_URL") or None
        self.REPO_BRANCH: str = env.get("REPO_BRANCH", "main")
        self.GIT_AUTH_TOKEN: Optional[str] = env.get("GIT_AUTH_TOKEN") or None
        self.GIT_AUTHOR_NAME: str = env.get("GIT_AUTHOR_NAME", "PostPal")
        self.GIT_AUTHOR_EMAIL: str = env.get("GIT_AUTHOR_EMAIL", "postpal@localhost")
        self.SYNC_ON_STARTUP: bool = _get_bool(env, "SYNC_ON_STARTUP", True)

        # Posts
        self.POSTS_SUBDIR: str = env.get("POSTS_SUBDIR", "content/posts")
        self.CHANNEL_ID: str = env.get("CHANNEL_ID", "postpal")

        # Discord
        self.DISCORD_WEBHOOK_URL: Optional[str] = env.get("DISCORD_WEBHOOK_URL") or None

    @property
    def POSTS_DIR(self) -> Path:
        """Absolute-or-relative path of the posts directory inside the repository."""
        return self.REPO_DIR / self.POSTS_SUBDIR

    def is_discord_enabled(self) -> bool:
        return self.DISCORD_WEBHOOK_URL is not None

    def __repr__(self):
        return f"<Config repo=\"{self.REPO_DIR}\" branch=\"{self.REPO_BRANCH}\" posts=\"{self.POSTS_SUBDIR}\">"
