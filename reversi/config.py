"""
Configuration - Settings loaded from environment variables.

Every setting has a default; environment variables override them.

Environment:
    SERVER_HOST, SERVER_PORT, CORS_ORIGINS, LOG_LEVEL
    AI_BATTLE_MAX_SESSIONS, AI_BATTLE_SESSION_TIMEOUT_MINUTES,
    AI_BATTLE_CLEANUP_INTERVAL_MINUTES, AI_BATTLE_DEFAULT_DIFFICULTY
    AI_SERVICE_TYPE, AI_SERVICE_TIMEOUT_MS, AI_SERVICE_MAX_RETRIES,
    AI_SERVICE_FAST_MODE
    ENABLE_AI_FALLBACK, AI_FALLBACK_SERVICE_TYPE,
    AI_FALLBACK_MAX_RETRY_ATTEMPTS, AI_FALLBACK_RETRY_DELAY_MS
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional
import logging
import os

from .errors import ConfigError
from .bots.policy import Difficulty
from .bots.service import ServiceType

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Invalid {name}: {raw!r} is not an integer", context={"variable": name})


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"Invalid {name}: {raw!r} is not a boolean", context={"variable": name})


def _get_service_type(env: Mapping[str, str], name: str, default: ServiceType) -> ServiceType:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return ServiceType(raw.strip().lower())
    except ValueError:
        raise ConfigError(
            f"Invalid {name}: {raw!r}, expected one of local, http, mock",
            context={"variable": name},
        )


def _get_difficulty(env: Mapping[str, str], name: str, default: Difficulty) -> Difficulty:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return Difficulty(raw.strip().lower())
    except ValueError:
        raise ConfigError(
            f"Invalid {name}: {raw!r}, expected one of easy, medium, hard",
            context={"variable": name},
        )


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


@dataclass
class BattleSettings:
    max_sessions: int = 100
    session_timeout_minutes: int = 30
    cleanup_interval_minutes: int = 5
    enable_session_cleanup: bool = True
    default_difficulty: Difficulty = Difficulty.EASY


@dataclass
class OpponentSettings:
    service_type: ServiceType = ServiceType.LOCAL
    timeout_ms: int = 5000
    max_retries: int = 3
    fast_mode: bool = False


@dataclass
class FallbackSettings:
    enable_fallback: bool = True
    service_type: Optional[ServiceType] = ServiceType.LOCAL
    max_retry_attempts: int = 3
    retry_delay_ms: int = 1000


@dataclass
class Settings:
    """
    Effective configuration.

    Usage:
        settings = Settings.from_env()
        settings.validate()
    """
    server: ServerSettings = field(default_factory=ServerSettings)
    battle: BattleSettings = field(default_factory=BattleSettings)
    opponent: OpponentSettings = field(default_factory=OpponentSettings)
    fallback: FallbackSettings = field(default_factory=FallbackSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """
        Build settings from environment variables.

        Raises:
            ConfigError: a variable is set but cannot be parsed
        """
        env = os.environ if environ is None else environ

        origins = env.get("CORS_ORIGINS", "*")
        server = ServerSettings(
            host=env.get("SERVER_HOST", "0.0.0.0"),
            port=_get_int(env, "SERVER_PORT", 3000),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
        battle = BattleSettings(
            max_sessions=_get_int(env, "AI_BATTLE_MAX_SESSIONS", 100),
            session_timeout_minutes=_get_int(env, "AI_BATTLE_SESSION_TIMEOUT_MINUTES", 30),
            cleanup_interval_minutes=_get_int(env, "AI_BATTLE_CLEANUP_INTERVAL_MINUTES", 5),
            enable_session_cleanup=_get_bool(env, "AI_BATTLE_ENABLE_SESSION_CLEANUP", True),
            default_difficulty=_get_difficulty(env, "AI_BATTLE_DEFAULT_DIFFICULTY", Difficulty.EASY),
        )
        opponent = OpponentSettings(
            service_type=_get_service_type(env, "AI_SERVICE_TYPE", ServiceType.LOCAL),
            timeout_ms=_get_int(env, "AI_SERVICE_TIMEOUT_MS", 5000),
            max_retries=_get_int(env, "AI_SERVICE_MAX_RETRIES", 3),
            fast_mode=_get_bool(env, "AI_SERVICE_FAST_MODE", False),
        )
        fallback = FallbackSettings(
            enable_fallback=_get_bool(env, "ENABLE_AI_FALLBACK", True),
            service_type=_get_service_type(env, "AI_FALLBACK_SERVICE_TYPE", ServiceType.LOCAL),
            max_retry_attempts=_get_int(
                env, "AI_FALLBACK_MAX_RETRY_ATTEMPTS", opponent.max_retries
            ),
            retry_delay_ms=_get_int(env, "AI_FALLBACK_RETRY_DELAY_MS", 1000),
        )
        return cls(server=server, battle=battle, opponent=opponent, fallback=fallback)

    def validate(self):
        """
        Raises:
            ConfigError: a value is out of range
        """
        if not 0 < self.server.port < 65536:
            raise ConfigError("Server port must be between 1 and 65535")
        if self.battle.max_sessions <= 0:
            raise ConfigError("Max sessions must be greater than 0")
        if self.battle.session_timeout_minutes <= 0:
            raise ConfigError("Session timeout must be greater than 0")
        if self.battle.cleanup_interval_minutes <= 0:
            raise ConfigError("Cleanup interval must be greater than 0")
        if self.opponent.timeout_ms <= 0:
            raise ConfigError("AI service timeout must be greater than 0")
        if self.fallback.max_retry_attempts <= 0:
            raise ConfigError("Fallback retry attempts must be greater than 0")
        if self.fallback.retry_delay_ms < 0:
            raise ConfigError("Fallback retry delay cannot be negative")
        if logging.getLevelName(self.server.log_level) == f"Level {self.server.log_level}":
            raise ConfigError(f"Unknown log level: {self.server.log_level}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["battle"]["default_difficulty"] = self.battle.default_difficulty.value
        data["opponent"]["service_type"] = self.opponent.service_type.value
        if self.fallback.service_type is not None:
            data["fallback"]["service_type"] = self.fallback.service_type.value
        return data


def configure_logging(level: str = "INFO"):
    """Configure root logging once at process entry."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
