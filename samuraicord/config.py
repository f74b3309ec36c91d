from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from samuraicord.chat import AdapterConfig
from samuraicord.exceptions import ConfigError

DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_REACTION_EMOJI = "kasu"
DEFAULT_STATUS_MESSAGE = "〇〇侍 を待っています"

# Environment variables win over config.yaml.
ENV_OVERRIDES = {
    "DISCORD_TOKEN": ("bot_token",),
    "SAMURAI_CSV_PATH": ("samurai_csv_path",),
    "OLLAMA_BASE_URL": ("ollama", "base_url"),
    "OLLAMA_MODEL": ("ollama", "model"),
}


@dataclass(frozen=True)
class AppConfig:
    bot_token: Optional[str] = None
    samurai_csv_path: Optional[str] = None
    reaction_emoji: str = DEFAULT_REACTION_EMOJI
    chat_enabled: bool = True
    filter_thinking_tags: bool = True
    status_message: str = DEFAULT_STATUS_MESSAGE
    chat: AdapterConfig = field(default_factory=AdapterConfig)

    def validate(self) -> "AppConfig":
        if not self.bot_token:
            raise ConfigError("Bot token is missing. Set DISCORD_TOKEN or add 'bot_token' to config.yaml.")
        if not self.samurai_csv_path:
            raise ConfigError("CSV path is missing. Set SAMURAI_CSV_PATH or add 'samurai_csv_path' to config.yaml.")
        return self


# --- Loading ---
def get_config(filename: str = DEFAULT_CONFIG_FILE) -> dict[str, Any]:
    try:
        with open(filename, encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except FileNotFoundError:
        logging.info(f"Config file '{filename}' not found, using environment variables only.")
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML from '{filename}': {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"'{filename}' must contain a mapping at the top level.")
    return data


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    merged = dict(data)
    section = merged.get("ollama") or {}
    if not isinstance(section, dict):
        raise ConfigError("'ollama' must be a mapping.")
    merged["ollama"] = dict(section)
    for var, path in ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = merged
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = value
    return merged


def _flag(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}.")
    return value


def read_text_or_default(path: Optional[str], default: str) -> str:
    if not path:
        return default
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logging.warning(f"Could not read '{path}' ({e}), falling back to the built-in default.")
        return default


def build_adapter_config(section: Mapping[str, Any]) -> AdapterConfig:
    defaults = AdapterConfig()

    system_prompt = section.get("system_prompt")
    if system_prompt is None:
        system_prompt = read_text_or_default(section.get("system_prompt_file"), defaults.system_prompt)

    try:
        connect_timeout = float(section.get("connect_timeout", defaults.connect_timeout))
        overall_timeout = float(section.get("overall_timeout", defaults.overall_timeout))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid ollama timeout: {e}") from e
    if connect_timeout <= 0 or overall_timeout <= 0:
        raise ConfigError("ollama timeouts must be positive.")

    return AdapterConfig(
        base_url=str(section.get("base_url") or defaults.base_url).strip().rstrip("/"),
        model=str(section.get("model") or defaults.model).strip(),
        system_prompt=system_prompt,
        connect_timeout=connect_timeout,
        overall_timeout=overall_timeout,
    )


def load_config(filename: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    environ = os.environ if environ is None else environ
    filename = filename or environ.get("SAMURAICORD_CONFIG") or DEFAULT_CONFIG_FILE
    data = apply_env_overrides(get_config(filename), environ)

    return AppConfig(
        bot_token=data.get("bot_token"),
        samurai_csv_path=data.get("samurai_csv_path"),
        reaction_emoji=data.get("reaction_emoji") or DEFAULT_REACTION_EMOJI,
        chat_enabled=_flag(data, "chat_enabled", True),
        filter_thinking_tags=_flag(data, "filter_thinking_tags", True),
        status_message=str(data.get("status_message") or DEFAULT_STATUS_MESSAGE)[:128],
        chat=build_adapter_config(data["ollama"]),
    )
