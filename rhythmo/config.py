"""
Configuration management for Rhythmo
"""
import os
import json
import logging
from typing import Dict, Any, Optional

from rhythmo.exceptions import ConfigurationError, PersistenceError, PrefixError

logger = logging.getLogger("Rhythmo.Config")

MAX_PREFIX_LENGTH = 3

# Load environment variables from .env file if exists
def load_env_file(path: Optional[str] = None):
    """Load environment variables from .env file if it exists."""
    env_path = path or os.path.join(os.getcwd(), '.env')
    if os.path.exists(env_path):
        try:
            with open(env_path, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        key = key.strip()
                        value = value.strip().strip('"').strip("'")
                        # Only set if not already in environment
                        if key and not os.getenv(key):
                            os.environ[key] = value
        except OSError as e:
            logger.warning("Could not load .env file: %s", e)

CONFIG_PATH = os.getenv("RHYTHMO_CONFIG", "config.json")
DEFAULT_CONFIG = {
    "token": "",
    "prefix": "!",
    "language": "en",
    "max_queue_size": 200,
    # pause between two tracks, keeps a failing stream from spinning
    "advance_delay_ms": 200,
    "idle_disconnect_seconds": 300,  # 0 keeps the bot connected forever
    "ffmpeg_bitrate": "128k",
    "ffmpeg_threads": 1,
    # streaming profile — 'stable' (default) or 'low-latency'
    "stream_profile": "stable",
    "voice_connect_retries": 3,
    # overall cap on one yt-dlp lookup; 0 waits as long as yt-dlp does
    "resolve_timeout_seconds": 30,
    "trace_logging": False,
    "structured_logging": False,
    "log_file": "Rhythmo.log",
}

def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.json, merged with defaults."""
    path = path or CONFIG_PATH
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                user_conf = json.load(f)
            if not isinstance(user_conf, dict):
                raise ValueError("top level must be an object")
            config = {**DEFAULT_CONFIG, **user_conf}
        except (OSError, ValueError) as e:
            logger.warning("Could not load %s: %s", path, e)
            config = DEFAULT_CONFIG.copy()
    else:
        config = DEFAULT_CONFIG.copy()

    return validate_config(config)

def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and sanitize configuration values in place.

    Does not remove unknown keys; only adjusts clearly invalid values so the
    rest of the bot can rely on sane bounds.
    """
    def clamp_int(key, minimum, default):
        try:
            if int(cfg.get(key)) < minimum:
                logger.warning("Config '%s'=%s < %s; fallback to %s", key, cfg.get(key), minimum, default)
                cfg[key] = default
            else:
                cfg[key] = int(cfg.get(key))
        except (TypeError, ValueError):
            logger.warning("Config '%s' invalid (%s); fallback to %s", key, cfg.get(key), default)
            cfg[key] = default
    clamp_int("max_queue_size", 1, DEFAULT_CONFIG["max_queue_size"])
    clamp_int("advance_delay_ms", 0, DEFAULT_CONFIG["advance_delay_ms"])
    clamp_int("idle_disconnect_seconds", 0, DEFAULT_CONFIG["idle_disconnect_seconds"])
    clamp_int("ffmpeg_threads", 1, DEFAULT_CONFIG["ffmpeg_threads"])
    clamp_int("voice_connect_retries", 1, DEFAULT_CONFIG["voice_connect_retries"])
    clamp_int("resolve_timeout_seconds", 0, DEFAULT_CONFIG["resolve_timeout_seconds"])
    profile = cfg.get("stream_profile")
    if profile not in ("stable", "low-latency"):
        logger.warning("Unknown stream_profile=%s; fallback to 'stable'", profile)
        cfg["stream_profile"] = "stable"
    prefix = cfg.get("prefix")
    if not isinstance(prefix, str) or not prefix.strip() or len(prefix) > MAX_PREFIX_LENGTH:
        logger.warning("Invalid prefix %r in config; fallback to %r", prefix, DEFAULT_CONFIG["prefix"])
        cfg["prefix"] = DEFAULT_CONFIG["prefix"]
    if str(cfg.get("language", "")).lower() not in ("en", "de"):
        cfg["language"] = DEFAULT_CONFIG["language"]
    return cfg

def get_token(config: Dict[str, Any]) -> str:
    """Discord token: DISCORD_TOKEN wins over the value stored in the config file."""
    token = os.getenv("DISCORD_TOKEN") or config.get("token")
    if not token:
        raise ConfigurationError("Set DISCORD_TOKEN or the 'token' field in config.json")
    return token

def persist_config(config: Dict[str, Any], path: Optional[str] = None) -> bool:
    """Persist configuration to config.json atomically. Returns False on failure."""
    path = path or CONFIG_PATH
    tmp_path = path + ".tmp"
    try:
        # Atomic write to avoid truncation corruption
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(config, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        return True
    except (OSError, TypeError, ValueError):
        logger.exception("Failed to persist config to %s", path)
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        return False


class ConfigStore:
    """Holds the live configuration and writes it back when the prefix changes."""

    def __init__(self, config: Dict[str, Any], path: Optional[str] = None) -> None:
        self._config = config
        self.path = path or CONFIG_PATH

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'ConfigStore':
        path = path or CONFIG_PATH
        return cls(load_config(path), path)

    @property
    def prefix(self) -> str:
        return self._config.get("prefix", DEFAULT_CONFIG["prefix"])

    @property
    def token(self) -> str:
        return get_token(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._config)

    def set_prefix(self, new_prefix: str) -> str:
        """Change the command prefix and persist the whole configuration.

        Raises PrefixError for an unusable prefix (nothing changes) and
        PersistenceError when the file could not be written; in that case the
        previous prefix is restored so memory and disk stay in agreement.
        """
        new_prefix = (new_prefix or "").strip()
        if not new_prefix or any(c.isspace() for c in new_prefix):
            raise PrefixError("Prefix must not be empty")
        if len(new_prefix) > MAX_PREFIX_LENGTH:
            raise PrefixError(f"Prefix longer than {MAX_PREFIX_LENGTH} characters")
        old = self.prefix
        self._config["prefix"] = new_prefix
        if not persist_config(self._config, self.path):
            self._config["prefix"] = old
            raise PersistenceError(f"Could not write {self.path}")
        logger.info("Prefix changed %r -> %r", old, new_prefix)
        return new_prefix
