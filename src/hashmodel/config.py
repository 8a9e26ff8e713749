"""
Configuration Management for HashModel

🔧 Store and Logging Setup:
Configuration models for choosing a value store backend and setting up
logging, with presets per environment and overrides from environment
variables:

    HASHMODEL_ENV          development | testing | production
    HASHMODEL_STORE        memory | redis
    HASHMODEL_REDIS_URL    redis connection URL
    HASHMODEL_LOG_LEVEL    logging level name
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .persistence import MemoryStore, RedisStore, ValueStore, get_memory_store
from .session import Session

LOGGER_NAME = "hashmodel"


class Environment(str, Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class StoreConfig(BaseModel):
    """Value store configuration"""
    model_config = ConfigDict(extra="forbid")

    backend: Literal["memory", "redis"] = "memory"
    url: str = "redis://localhost:6379/0"
    socket_timeout: Optional[float] = None
    shared: bool = True  # memory backend: use the process-wide store


class LoggingConfig(BaseModel):
    """Logging configuration"""
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class HashModelConfig(BaseModel):
    """Complete HashModel configuration"""
    model_config = ConfigDict(extra="forbid")

    environment: Environment = Environment.DEVELOPMENT
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'HashModelConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.store.backend = "memory"
            config.store.shared = False
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.store.backend = "redis"
            config.store.socket_timeout = 5.0
            config.logging.level = "INFO"

        return config

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> 'HashModelConfig':
        """Create configuration from dictionary, starting from the environment preset"""
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT))
        base = cls.for_environment(environment).model_dump()

        for section in ("store", "logging"):
            if section in config_dict:
                base[section].update(config_dict[section])

        return cls.model_validate(base)

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> 'HashModelConfig':
        """Create configuration from environment variables"""
        environ = os.environ if environ is None else environ
        config = cls.for_environment(Environment(environ.get("HASHMODEL_ENV", "development")))

        overrides: Dict[str, Dict[str, Any]] = {"store": {}, "logging": {}}
        if environ.get("HASHMODEL_STORE"):
            overrides["store"]["backend"] = environ["HASHMODEL_STORE"].lower()
        if environ.get("HASHMODEL_REDIS_URL"):
            overrides["store"]["url"] = environ["HASHMODEL_REDIS_URL"]
        if environ.get("HASHMODEL_LOG_LEVEL"):
            overrides["logging"]["level"] = environ["HASHMODEL_LOG_LEVEL"].upper()

        data = config.model_dump()
        for section, values in overrides.items():
            data[section].update(values)
        return cls.model_validate(data)


def create_store(config: Optional[HashModelConfig] = None) -> ValueStore:
    """Create the value store described by ``config``"""
    config = config or HashModelConfig.from_environment()
    store_config = config.store

    if store_config.backend == "redis":
        return RedisStore(store_config.url, socket_timeout=store_config.socket_timeout)
    if store_config.shared:
        return get_memory_store()
    return MemoryStore()


def configure_logging(config: Optional[HashModelConfig] = None) -> logging.Logger:
    """Attach a stream handler to the ``hashmodel`` logger (once) and set its level"""
    config = config or HashModelConfig.from_environment()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.logging.level)

    handler = next((h for h in logger.handlers if h.get_name() == LOGGER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(LOGGER_NAME)
        logger.addHandler(handler)
    handler.setFormatter(logging.Formatter(config.logging.format))

    return logger


def open_session(config: Optional[HashModelConfig] = None) -> Session:
    """Open a session on a store created from ``config``"""
    config = config or HashModelConfig.from_environment()
    store = create_store(config)
    # The shared memory store outlives any one session
    owns_store = not (config.store.backend == "memory" and config.store.shared)
    return Session(store, close_store=owns_store)


__all__ = [
    "Environment", "StoreConfig", "LoggingConfig", "HashModelConfig",
    "create_store", "configure_logging", "open_session"
]
