"""Environment variable configuration for the related-papers engine.

Values are loaded in priority order:
  1. Shell environment variables (highest priority)
  2. .env file in current directory
  3. ~/.related-papers/.env (persistent config, set via `related env set`)

Run `related env` to see which keys are configured.
Run `related env set KEY value` to save a key persistently.

Keys:
    S2_API_KEY                   ->  optional, raises Semantic Scholar rate limits
Tunables (all optional):
    API_TIMEOUT                  ->  seconds per lookup / edge request (15)
    BATCH_API_TIMEOUT            ->  seconds per batch metadata request (30)
    S2_MAX_REQUESTS_PER_SECOND   ->  shared request budget (1000)
    S2_MAX_ATTEMPTS              ->  attempts per request on HTTP 429 (1 = no retry)
    S2_MAX_EDGES                 ->  references / citations fetched per paper (500)
    RELATED_RESOLVE_BATCH        ->  concurrent reference resolutions (5)
    RELATED_FRONTIER_BATCH       ->  concurrent depth-1 expansions (3)
    RELATED_TOP_N                ->  ranked papers returned (50, at most 50)
    RELATED_GRAPH_METHOD         ->  graph construction method (snowball)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

CONFIG_DIR = Path.home() / ".related-papers"
PERSISTENT_ENV = CONFIG_DIR / ".env"

# Load in reverse priority order (later loads don't overwrite existing)
if PERSISTENT_ENV.exists():
    load_dotenv(PERSISTENT_ENV)

load_dotenv()


# --- Persistent config ---

def save_key(name: str, value: str) -> Path:
    """Save a value to ~/.related-papers/.env for persistent use."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    replaced = False
    if PERSISTENT_ENV.exists():
        for line in PERSISTENT_ENV.read_text().splitlines():
            if line.startswith(f"{name}="):
                lines.append(f"{name}={value}")
                replaced = True
            else:
                lines.append(line)

    if not replaced:
        lines.append(f"{name}={value}")

    PERSISTENT_ENV.write_text("\n".join(lines) + "\n")
    os.environ[name] = value

    return PERSISTENT_ENV


# --- Accessors ---

def get_s2_key() -> str | None:
    """S2 key is optional; returns None if not set."""
    return os.getenv("S2_API_KEY") or None


def _positive_number(name: str, default: str, cast=int, maximum=None):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be at most {maximum}, got {raw!r}")
    return value


# Ranked lists never exceed this, whatever RELATED_TOP_N or --top say.
MAX_TOP_N = 50


def get_timeout() -> float:
    return _positive_number("API_TIMEOUT", "15", float)


def get_batch_timeout() -> float:
    return _positive_number("BATCH_API_TIMEOUT", "30", float)


def get_max_attempts() -> int:
    return _positive_number("S2_MAX_ATTEMPTS", "1")


def get_graph_method() -> str:
    return os.getenv("RELATED_GRAPH_METHOD", "snowball").strip().lower() or "snowball"


@dataclass(frozen=True)
class SnowballSettings:
    """Tunables for one snowball crawl."""
    max_requests_per_second: float = 1000.0
    resolve_batch: int = 5
    frontier_batch: int = 3
    top_n: int = 50
    max_edges: int = 500


def load_settings() -> SnowballSettings:
    """Build SnowballSettings from the environment."""
    return SnowballSettings(
        max_requests_per_second=_positive_number("S2_MAX_REQUESTS_PER_SECOND", "1000", float),
        resolve_batch=_positive_number("RELATED_RESOLVE_BATCH", "5"),
        frontier_batch=_positive_number("RELATED_FRONTIER_BATCH", "3"),
        top_n=_positive_number("RELATED_TOP_N", "50", maximum=MAX_TOP_N),
        max_edges=_positive_number("S2_MAX_EDGES", "500"),
    )


# --- Status check ---

VALID_KEYS = {
    "S2_API_KEY",
    "API_TIMEOUT",
    "BATCH_API_TIMEOUT",
    "S2_MAX_REQUESTS_PER_SECOND",
    "S2_MAX_ATTEMPTS",
    "S2_MAX_EDGES",
    "RELATED_RESOLVE_BATCH",
    "RELATED_FRONTIER_BATCH",
    "RELATED_TOP_N",
    "RELATED_GRAPH_METHOD",
}

ENV_VARS = {
    "S2_API_KEY": {
        "required_by": ["related find", "related lookup (optional, increases rate limits)"],
        "description": "Semantic Scholar academic graph API",
    },
}


TUNABLES = {
    "API_TIMEOUT": ("15", "seconds per lookup / edge request"),
    "BATCH_API_TIMEOUT": ("30", "seconds per batch metadata request"),
    "S2_MAX_ATTEMPTS": ("1", "attempts per request on HTTP 429"),
    "S2_MAX_REQUESTS_PER_SECOND": ("1000", "shared request budget"),
    "S2_MAX_EDGES": ("500", "references / citations fetched per paper"),
    "RELATED_RESOLVE_BATCH": ("5", "concurrent reference resolutions"),
    "RELATED_FRONTIER_BATCH": ("3", "concurrent depth-1 expansions"),
    "RELATED_TOP_N": (str(MAX_TOP_N), f"ranked papers returned (at most {MAX_TOP_N})"),
    "RELATED_GRAPH_METHOD": ("snowball", "graph construction method"),
}


def check_env() -> list[tuple[str, bool, dict]]:
    """Return list of (var_name, is_set, info) for all known env vars."""
    result = []
    for var, info in ENV_VARS.items():
        is_set = bool(os.getenv(var))
        result.append((var, is_set, info))
    return result


def check_tunables() -> list[tuple[str, str | None, str, str]]:
    """Return (name, current value or None, default, description) per tunable."""
    return [
        (name, os.getenv(name) or None, default, description)
        for name, (default, description) in TUNABLES.items()
    ]
