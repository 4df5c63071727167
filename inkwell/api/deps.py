import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from inkwell.adapters.clock import SystemClock
from inkwell.adapters.sqlite.repos import SQLitePostRepo, SQLiteRedirectRepo
from inkwell.components.posts import PostService
from inkwell.components.redirects import (
    CachingRedirectResolver,
    DeletionGuard,
    RedirectConfig,
    RedirectResolver,
    RedirectService,
)
from inkwell.rules.loader import load_rules
from inkwell.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[2]


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.data_dir = Path(os.environ.get("INKWELL_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "inkwell.db")
        self.rules_path = Path(os.environ.get("INKWELL_RULES_PATH", "./rules.yaml"))
        self.migrations_dir = str(PROJECT_ROOT / "migrations")
        self.log_level = os.environ.get("INKWELL_LOG_LEVEL", "INFO").upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_redirect_config(rules: Rules = Depends(get_rules)) -> RedirectConfig:
    return RedirectConfig.from_rules(rules.redirects)


# --- Repos ---
def get_post_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLitePostRepo:
    return SQLitePostRepo(settings.db_path, timeout=rules.storage.timeout_seconds)


def get_redirect_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> SQLiteRedirectRepo:
    return SQLiteRedirectRepo(settings.db_path, timeout=rules.storage.timeout_seconds)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# Resolution cache singleton; shared by the read path and every writer
_redirect_cache_instance: CachingRedirectResolver | None = None


def get_redirect_cache(
    rules: Rules = Depends(get_rules),
    store: SQLiteRedirectRepo = Depends(get_redirect_repo),
    posts: SQLitePostRepo = Depends(get_post_repo),
    config: RedirectConfig = Depends(get_redirect_config),
    clock: SystemClock = Depends(get_clock),
) -> CachingRedirectResolver | None:
    """Get the resolution cache, or None when caching is disabled."""
    global _redirect_cache_instance
    if not rules.cache.enabled:
        return None
    if _redirect_cache_instance is None:
        _redirect_cache_instance = CachingRedirectResolver(
            RedirectResolver(store, posts, config),
            ttl_seconds=rules.cache.ttl_seconds,
            max_entries=rules.cache.max_entries,
            time_port=clock,
        )
    return _redirect_cache_instance


def reset_redirect_cache() -> None:
    global _redirect_cache_instance
    _redirect_cache_instance = None


# --- Component Services ---
def get_resolver(
    store: SQLiteRedirectRepo = Depends(get_redirect_repo),
    posts: SQLitePostRepo = Depends(get_post_repo),
    config: RedirectConfig = Depends(get_redirect_config),
    cache: CachingRedirectResolver | None = Depends(get_redirect_cache),
) -> RedirectResolver | CachingRedirectResolver:
    if cache is not None:
        return cache
    return RedirectResolver(store, posts, config)


def get_redirect_service(
    store: SQLiteRedirectRepo = Depends(get_redirect_repo),
    posts: SQLitePostRepo = Depends(get_post_repo),
    config: RedirectConfig = Depends(get_redirect_config),
    cache: CachingRedirectResolver | None = Depends(get_redirect_cache),
    clock: SystemClock = Depends(get_clock),
) -> RedirectService:
    """Get redirect component service."""
    return RedirectService(store=store, posts=posts, time_port=clock, cache=cache, config=config)


def get_post_service(
    repo: SQLitePostRepo = Depends(get_post_repo),
    store: SQLiteRedirectRepo = Depends(get_redirect_repo),
    resolver: RedirectResolver | CachingRedirectResolver = Depends(get_resolver),
    cache: CachingRedirectResolver | None = Depends(get_redirect_cache),
) -> PostService:
    """Get post component service."""
    return PostService(repo=repo, resolver=resolver, guard=DeletionGuard(store), cache=cache)


# --- Caller identity ---
def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Caller id as set by the auth layer in front of this service."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user id",
        ) from None
