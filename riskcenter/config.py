# riskcenter/config.py
# Configuration system for the Incident Risk Center

"""
Risk Center settings

The environment (and an optional .env file) is read exactly once, here.
Everything else receives frozen dataclasses, either APP_CONFIG or a
copy made with dataclasses.replace() in tests.

Usage:
    from riskcenter.config import APP_CONFIG

    # Access any config
    profile = APP_CONFIG.llm_profiles['report']
    timeout = APP_CONFIG.generation.timeout_s
    gemini_url = APP_CONFIG.providers['gemini'].base_url
"""

import os
import sys
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from dotenv import load_dotenv

load_dotenv()


# ============================================================================
# Helper Functions
# ============================================================================

def _env(key: str, default: str = "") -> str:
    """Raw string value, or ``default``."""
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Integer value; unparseable values fall back to ``default``."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    """Float value; unparseable values fall back to ``default``."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool = False) -> bool:
    """1/true/yes/on or 0/false/no/off; anything else is ``default``."""
    value = os.environ.get(key, "").lower()
    if value in ("1", "true", "yes", "on"):
        return True
    elif value in ("0", "false", "no", "off"):
        return False
    return default


# ============================================================================
# Settings Dataclasses
# ============================================================================

@dataclass(frozen=True)
class ProviderConfig:
    """Endpoint, key and timeout for one LLM backend."""
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 120.0
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GenerationConfig:
    """Report generation policy (owned by the core, not the provider)."""
    profile: str
    timeout_s: float
    max_network_retries: int
    retry_backoff_s: float
    temperature: float


@dataclass(frozen=True)
class SessionConfig:
    """Per-session display behaviour."""
    reveal_delay_s: float
    max_sessions: int


@dataclass(frozen=True)
class StoreConfig:
    """Report archive configuration."""
    backend: str  # "json" or "mongo"
    json_path: str
    mongo_uri: str
    db_name: str
    collection: str
    server_selection_timeout_ms: int
    seed_scenarios: bool


@dataclass(frozen=True)
class AppConfig:
    """Everything the app, CLI and sessions read."""

    # Provider configurations
    providers: Dict[str, ProviderConfig]

    # LLM profiles for easy selection
    llm_profiles: Dict[str, Dict[str, Any]]

    # Report generation
    generation: GenerationConfig

    # Sessions
    session: SessionConfig

    # Archive
    store: StoreConfig

    # Reference corpus (JSON file or directory of text files)
    corpus_path: Optional[str]

    # Application
    debug_mode: bool
    log_level: str
    log_file: Optional[str]
    flask_debug: bool
    secret_key: str


# ============================================================================
# Loader
# ============================================================================

class ConfigLoader:
    """Builds AppConfig from the process environment."""

    @staticmethod
    def from_env() -> AppConfig:
        """Read every setting, applying defaults."""

        # --- Provider Configurations ---
        providers = {
            "gemini": ProviderConfig(
                base_url=_env("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
                api_key=_env("GEMINI_API_KEY", ""),
                timeout=_env_float("GEMINI_TIMEOUT", 60.0),
                options={}
            ),
            "ollama": ProviderConfig(
                base_url=_env("OLLAMA_BASE_URL", "http://localhost:11434"),
                timeout=_env_float("OLLAMA_TIMEOUT", 120.0),
                options={
                    "num_ctx": _env_int("OLLAMA_NUM_CTX", 32768),
                }
            ),
            "openai": ProviderConfig(
                base_url=_env("OPENAI_BASE_URL", "https://api.openai.com/v1"),
                api_key=_env("OPENAI_API_KEY", ""),
                timeout=_env_float("OPENAI_TIMEOUT", 60.0),
                options={}
            ),
            "lmstudio": ProviderConfig(
                base_url=_env("LMSTUDIO_BASE_URL", "http://localhost:1234/v1"),
                timeout=_env_float("LMSTUDIO_TIMEOUT", 120.0),
                options={}
            ),
        }

        # --- LLM Profiles ---
        llm_profiles = {
            # Structured report generation (default)
            "report": {
                "provider": _env("REPORT_PROVIDER", "gemini"),
                "model": _env("REPORT_MODEL", "gemini-2.5-flash"),
                "temperature": 0.2,
                "timeout": 60.0,
            },

            # Local model when no cloud key is available
            "local": {
                "provider": "ollama",
                "model": _env("LLM_LOCAL_MODEL", "qwen2.5:14b"),
                "temperature": 0.2,
                "timeout": 120.0,
            },

            # OpenAI fallback
            "cloud": {
                "provider": "openai",
                "model": _env("OPENAI_MODEL", "gpt-4o-mini"),
                "temperature": 0.2,
                "timeout": 60.0,
            },
        }

        # --- Generation Policy ---
        generation = GenerationConfig(
            profile=_env("GENERATION_PROFILE", "report"),
            timeout_s=_env_float("GENERATION_TIMEOUT_S", 90.0),
            max_network_retries=_env_int("GENERATION_MAX_RETRIES", 0),
            retry_backoff_s=_env_float("GENERATION_RETRY_BACKOFF_S", 1.0),
            temperature=_env_float("GENERATION_TEMPERATURE", 0.2),
        )

        # --- Sessions ---
        session = SessionConfig(
            reveal_delay_s=_env_float("REVEAL_DELAY_S", 0.75),
            max_sessions=_env_int("MAX_SESSIONS", 500),
        )

        # --- Archive ---
        store = StoreConfig(
            backend=_env("STORE_BACKEND", "json"),
            json_path=_env("STORE_JSON_PATH", "data/archived_reports.jsonl"),
            mongo_uri=_env("APP_MONGO_URI") or _env("MONGO_URI", "mongodb://localhost:27017"),
            db_name=_env("MONGO_DB_NAME", "risk_center"),
            collection=_env("REPORTS_COLLECTION", "archived_reports"),
            server_selection_timeout_ms=_env_int("MONGO_SERVER_TIMEOUT_MS", 5000),
            seed_scenarios=_env_bool("STORE_SEED_SCENARIOS", True),
        )

        # --- Application ---
        return AppConfig(
            providers=providers,
            llm_profiles=llm_profiles,
            generation=generation,
            session=session,
            store=store,
            corpus_path=_env("CORPUS_PATH") or None,
            debug_mode=_env_bool("DEBUG_MODE", False),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_file=_env("LOG_FILE") or None,
            flask_debug=_env_bool("FLASK_DEBUG", False),
            secret_key=_env("SECRET_KEY", "change-me-in-production"),
        )


# ============================================================================
# Process-wide Settings
# ============================================================================

APP_CONFIG = ConfigLoader.from_env()


# ============================================================================
# Exports
# ============================================================================

__all__ = [
    "APP_CONFIG",
    "AppConfig",
    "ConfigLoader",
    "ProviderConfig",
    "GenerationConfig",
    "SessionConfig",
    "StoreConfig",
]


# ============================================================================
# Startup Checks
# ============================================================================

def _validate_config():
    """Print misconfiguration warnings to stderr when DEBUG_MODE is on."""
    issues = []

    report_profile = APP_CONFIG.llm_profiles.get(APP_CONFIG.generation.profile)
    if report_profile is None:
        issues.append(f"GENERATION_PROFILE '{APP_CONFIG.generation.profile}' is not a known profile")
    else:
        provider = report_profile.get("provider")
        if provider in ("gemini", "openai") and not APP_CONFIG.providers[provider].api_key:
            issues.append(f"{provider.upper()}_API_KEY not set but the generation profile uses {provider}")

    if APP_CONFIG.store.backend not in ("json", "mongo"):
        issues.append(f"STORE_BACKEND '{APP_CONFIG.store.backend}' is not one of json/mongo")

    if APP_CONFIG.secret_key == "change-me-in-production":
        issues.append("SECRET_KEY is the built-in default")

    if issues and APP_CONFIG.debug_mode:
        sys.stderr.write("\nRisk Center configuration warnings:\n")
        for issue in issues:
            sys.stderr.write(f"   - {issue}\n")
        sys.stderr.write("\n")


_validate_config()
