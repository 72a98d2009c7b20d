"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI overrides
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class OpenAIConfig:
    base_url: str = ""
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: int = 120


@dataclass
class OpenRouterConfig:
    base_url: str = ""
    api_key_env: str = "OPENROUTER_API_KEY"
    timeout_seconds: int = 120
    site_url: str = ""
    app_name: str = ""


@dataclass
class GeminiConfig:
    base_url: str = ""
    api_key_env: str = "GEMINI_API_KEY"
    timeout_seconds: int = 120


@dataclass
class AgentConfig:
    default_source: str = "openai"
    default_model: str = "gpt-4o"
    max_turns: int = 20
    max_concurrent_tools: int = 8
    max_retries: int = 0
    load_plugins: bool = False


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class AgentkitConfig:
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    openrouter: OpenRouterConfig = field(default_factory=OpenRouterConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "AGENTKIT_OPENAI_BASE_URL":         ("openai.base_url", str),
    "AGENTKIT_OPENAI_API_KEY_ENV":      ("openai.api_key_env", str),
    "AGENTKIT_OPENAI_TIMEOUT":          ("openai.timeout_seconds", int),
    "AGENTKIT_OPENROUTER_BASE_URL":     ("openrouter.base_url", str),
    "AGENTKIT_OPENROUTER_API_KEY_ENV":  ("openrouter.api_key_env", str),
    "AGENTKIT_OPENROUTER_TIMEOUT":      ("openrouter.timeout_seconds", int),
    "AGENTKIT_OPENROUTER_SITE_URL":     ("openrouter.site_url", str),
    "AGENTKIT_OPENROUTER_APP_NAME":     ("openrouter.app_name", str),
    "AGENTKIT_GEMINI_BASE_URL":         ("gemini.base_url", str),
    "AGENTKIT_GEMINI_API_KEY_ENV":      ("gemini.api_key_env", str),
    "AGENTKIT_GEMINI_TIMEOUT":          ("gemini.timeout_seconds", int),
    "AGENTKIT_SOURCE":                  ("agent.default_source", str),
    "AGENTKIT_MODEL":                   ("agent.default_model", str),
    "AGENTKIT_MAX_TURNS":               ("agent.max_turns", int),
    "AGENTKIT_MAX_CONCURRENT_TOOLS":    ("agent.max_concurrent_tools", int),
    "AGENTKIT_MAX_RETRIES":             ("agent.max_retries", int),
    "AGENTKIT_LOAD_PLUGINS":            ("agent.load_plugins", bool),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def find_config_path() -> Path | None:
    """Find a config file in the standard locations."""
    candidates = [
        Path.cwd() / "agentkit.yaml",
        Path.cwd() / "agentkit.yml",
        Path.home() / ".config" / "agentkit" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AgentkitConfig:
    """
    Build an AgentkitConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI overrides

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile and "profiles" in raw:
        profile_data = raw.get("profiles", {}).get(profile, {})
        if profile_data:
            raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = AgentkitConfig(
        openai=_build_section(OpenAIConfig, raw.get("openai", {})),
        openrouter=_build_section(OpenRouterConfig, raw.get("openrouter", {})),
        gemini=_build_section(GeminiConfig, raw.get("gemini", {})),
        agent=_build_section(AgentConfig, raw.get("agent", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
