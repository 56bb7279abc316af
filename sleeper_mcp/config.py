"""
Configuration constants and shared utilities for the Sleeper MCP Server.

Values are read once from the ConfigManager at import time, with hardcoded
fallbacks so the tools keep working when no configuration can be loaded.
"""

import re
import html
import httpx
from typing import Any, Dict

from .config_manager import get_config_manager


def _get_timeout_config():
    """Get timeout configuration from ConfigManager."""
    try:
        return get_config_manager().get_http_timeout()
    except Exception:
        return httpx.Timeout(30.0, connect=10.0)

def _get_long_timeout_config():
    """Get long timeout configuration from ConfigManager."""
    try:
        return get_config_manager().get_long_http_timeout()
    except Exception:
        return httpx.Timeout(120.0, connect=15.0)

DEFAULT_TIMEOUT = _get_timeout_config()
LONG_TIMEOUT = _get_long_timeout_config()


def _get_server_version():
    try:
        return get_config_manager().config.server.version
    except Exception:
        return "0.1.0"

def _get_base_user_agent():
    try:
        return get_config_manager().config.server.base_user_agent
    except Exception:
        return f"Sleeper-MCP-Server/{_get_server_version()}"

SERVER_VERSION = _get_server_version()
BASE_USER_AGENT = _get_base_user_agent()

SLEEPER_SERVICES = (
    "sleeper_user",
    "sleeper_league",
    "sleeper_rosters",
    "sleeper_users",
    "sleeper_matchups",
    "sleeper_transactions",
    "sleeper_drafts",
    "sleeper_nfl_state",
    "sleeper_players",
    "sleeper_trending",
)


def _get_user_agents():
    """Get user agents dictionary from ConfigManager."""
    try:
        config_manager = get_config_manager()
        return {name: config_manager.get_user_agent(name) for name in SLEEPER_SERVICES}
    except Exception:
        return {name: BASE_USER_AGENT for name in SLEEPER_SERVICES}

USER_AGENTS = _get_user_agents()


def get_http_headers(service_name: str) -> Dict[str, str]:
    """
    Get standardized HTTP headers for a service.

    Args:
        service_name: The service name key from USER_AGENTS

    Returns:
        Dictionary with standard headers including User-Agent
    """
    return {
        "User-Agent": USER_AGENTS.get(service_name, BASE_USER_AGENT),
        "Accept": "application/json",
    }


def create_http_client(timeout: httpx.Timeout = None) -> httpx.AsyncClient:
    """
    Create a configured HTTP client with standard settings.

    Args:
        timeout: Optional custom timeout, uses DEFAULT_TIMEOUT if not provided

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        timeout=timeout or DEFAULT_TIMEOUT,
        follow_redirects=True
    )


def _get_limits():
    """Get validation limits from ConfigManager."""
    try:
        return get_config_manager().get_limits_dict()
    except Exception:
        return {
            "search_limit_min": 1,
            "search_limit_max": 50,
            "search_limit_default": 10,
            "week_min": 1,
            "week_max": 22,
            "trending_lookback_min": 1,
            "trending_lookback_max": 168,
            "trending_limit_min": 1,
            "trending_limit_max": 100,
            "player_ids_max": 200,
        }

LIMITS = _get_limits()


DANGEROUS_PATTERNS = {
    'sql_injection': [
        r'(\bunion\b|\bselect\b|\binsert\b|\bupdate\b|\bdelete\b|\bdrop\b)\s',
        r'(--|\/\*|\*\/)',
        r"('\s*or\s*'|\"\s*or\s*\")",
    ],
    'xss_injection': [
        r'<script[^>]*>',
        r'javascript:',
        r'on(load|error|click|mouseover)\s*=',
    ],
    'command_injection': [
        r'(\||;|`|\$\(|\${)',
    ],
    'path_traversal': [
        r'\.\./|\.\.\\|%2e%2e',
    ]
}

SAFE_PATTERNS = {
    'sleeper_id': re.compile(r'^[0-9]+$'),  # league, draft and user ids are numeric
    'player_id': re.compile(r'^[A-Za-z0-9]+$'),  # numeric ids, team codes for DEF
    'username_or_id': re.compile(r'^[A-Za-z0-9_]+$'),
    'position': re.compile(r'^(QB|RB|WR|TE|K|DEF|FLEX|DL|LB|DB)$', re.IGNORECASE),
    'team_id': re.compile(r'^[A-Za-z]{2,4}$'),
    'player_name': re.compile(r"^[A-Za-z0-9\s\.\-']+$"),
    'trend_type': re.compile(r'^(add|drop)$'),
    'season': re.compile(r'^[0-9]{4}$'),
}


def validate_string_input(value: str, input_type: str = 'general', max_length: int = None, required: bool = True) -> str:
    """
    Validate and sanitize string inputs.

    Args:
        value: The string value to validate
        input_type: Key of SAFE_PATTERNS, or 'general' for free text
        max_length: Maximum allowed length (uses ConfigManager default if None)
        required: Whether the input is required (cannot be empty)

    Returns:
        Validated and sanitized string

    Raises:
        ValueError: If validation fails
    """
    if value is None:
        if required:
            raise ValueError("Required string input cannot be None")
        return ""

    if not isinstance(value, str):
        raise ValueError(f"Input must be a string, got {type(value)}")

    if max_length is None:
        try:
            max_length = get_config_manager().config.security.max_string_length
        except Exception:
            max_length = 1000

    if len(value) > max_length:
        raise ValueError(f"Input length ({len(value)}) exceeds maximum ({max_length})")

    if required and not value.strip():
        raise ValueError("Required string input cannot be empty")
    if not value.strip():
        return ""

    if input_type in SAFE_PATTERNS:
        if not SAFE_PATTERNS[input_type].match(value.strip()):
            raise ValueError(f"Input does not match required pattern for {input_type}")
        return value.strip()

    try:
        enable_injection_detection = get_config_manager().config.security.enable_injection_detection
    except Exception:
        enable_injection_detection = True

    if enable_injection_detection:
        value_lower = value.lower()
        for pattern_type, patterns in DANGEROUS_PATTERNS.items():
            for pattern in patterns:
                if re.search(pattern, value_lower, re.IGNORECASE):
                    raise ValueError(f"Input contains potentially dangerous pattern ({pattern_type})")

    return html.escape(value.strip())


def validate_numeric_input(value: Any, min_val: int = None, max_val: int = None,
                         default: int = None, required: bool = True) -> int:
    """
    Numeric validation with type coercion and range checks.

    Args:
        value: The value to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value
        default: Default value if None or invalid
        required: Whether the input is required

    Returns:
        Validated integer value

    Raises:
        ValueError: If validation fails and no default provided
    """
    if value is None:
        if default is not None:
            return default
        if not required:
            return None
        raise ValueError("Required numeric input cannot be None")

    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid numeric input")

    try:
        int_value = int(value)
    except (ValueError, TypeError):
        if default is not None:
            return default
        raise ValueError(f"Cannot convert '{value}' to integer")

    if min_val is not None and int_value < min_val:
        if default is not None:
            return max(default, min_val)
        raise ValueError(f"Value {int_value} is below minimum {min_val}")

    if max_val is not None and int_value > max_val:
        if default is not None:
            return min(default, max_val)
        raise ValueError(f"Value {int_value} exceeds maximum {max_val}")

    return int_value


def validate_limit(value: int, min_val: int, max_val: int, default: int = None) -> int:
    """
    Validate and correct a limit parameter, falling back to the default.
    """
    if value is None:
        return default if default is not None else min_val

    try:
        return validate_numeric_input(value, min_val, max_val, default, required=True)
    except ValueError:
        return default if default is not None else min_val
