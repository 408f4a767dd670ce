"""
Loads and handles config from config.yml
Secrets (TOKEN_SECRET) are loaded from .env for security
"""
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEV_TOKEN_SECRET = "dev-token-secret-change-in-production"


class SearchConfig(BaseModel):
    """Configuration for the external search provider."""
    provider: str = "hackernews"
    base_url: str = "https://hn.algolia.com/api/v1"
    tags: str = "story"
    page_size: int = Field(20, ge=1)
    max_page_size: int = Field(100, ge=1)
    timeout_seconds: float = Field(10.0, gt=0)


class AggregationConfig(BaseModel):
    """Configuration for enriching a result page with annotations."""
    strict_enrichment: bool = False  # fail the whole page on any annotation error
    max_concurrency: int = Field(8, ge=1)


class Config(BaseModel):
    # Core
    APP_ENV: str = "development"
    DATABASE_PATH: str = "data/app.db"
    LOG_LEVEL: str = "INFO"

    # Auth
    TOKEN_SECRET: str = DEV_TOKEN_SECRET
    TOKEN_TTL_HOURS: int = Field(24, ge=1)

    search: SearchConfig = SearchConfig()
    aggregation: AggregationConfig = AggregationConfig()


def _bool(value: str | bool) -> bool:
    """Convert string or bool to boolean."""
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    env_path = os.getenv("APP_CONFIG_PATH")
    if env_path:
        return env_path

    # Try relative path first
    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    # Try from project root
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _parse_search_config(data: Dict[str, Any]) -> SearchConfig:
    """Parse search provider configuration from YAML data."""
    return SearchConfig(
        provider=data.get("provider", "hackernews"),
        base_url=data.get("base_url", "https://hn.algolia.com/api/v1"),
        tags=data.get("tags", "story"),
        page_size=int(data.get("page_size", 20)),
        max_page_size=int(data.get("max_page_size", 100)),
        timeout_seconds=float(data.get("timeout_seconds", 10.0)),
    )


def _parse_aggregation_config(data: Dict[str, Any]) -> AggregationConfig:
    return AggregationConfig(
        strict_enrichment=_bool(data.get("strict_enrichment", False)),
        max_concurrency=int(data.get("max_concurrency", 8)),
    )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml and secrets from .env."""
    # Load .env for sensitive credentials
    load_dotenv()

    config_path = path or _get_config_path()
    config: Dict[str, Any] = {}
    if config_path:
        with open(config_path, 'r') as file:
            config = yaml.safe_load(file) or {}
    else:
        logger.info("No config.yml found, using defaults")

    app_env = (os.getenv("APP_ENV") or config.get("APP_ENV", "development")).lower()

    token_secret = os.getenv("TOKEN_SECRET")
    if not token_secret:
        if app_env != "development":
            raise ValueError(f"TOKEN_SECRET must be set when APP_ENV is {app_env!r}")
        logger.warning("TOKEN_SECRET not set, using development secret")
        token_secret = DEV_TOKEN_SECRET

    return Config(
        APP_ENV=app_env,
        DATABASE_PATH=os.getenv("DATABASE_PATH") or config.get("DATABASE_PATH", "data/app.db"),
        LOG_LEVEL=(os.getenv("LOG_LEVEL") or config.get("LOG_LEVEL", "INFO")).upper(),
        TOKEN_SECRET=token_secret,
        TOKEN_TTL_HOURS=int(config.get("TOKEN_TTL_HOURS", 24)),
        search=_parse_search_config(config.get("search") or {}),
        aggregation=_parse_aggregation_config(config.get("aggregation") or {}),
    )
