"""
Known WAF settings and the settings-help text.

The API remains the authority on what it accepts: unknown keys are passed
through with a warning, but enumerated settings are checked locally so a
typo does not reach the firewall.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .utils import setup_logging

logger = setup_logging("settings")


class SettingError(Exception):
    """Exception raised for an invalid setting value."""
    pass


@dataclass(frozen=True)
class SettingInfo:
    description: str
    values: Optional[Tuple[str, ...]] = None


KNOWN_SETTINGS: Dict[str, SettingInfo] = {
    "security_level": SettingInfo(
        "Firewall security level", ("low", "high", "paranoid")),
    "admin_access": SettingInfo(
        "Access to admin panels, 'restricted' allows whitelisted IPs only",
        ("open", "restricted")),
    "comment_access": SettingInfo(
        "Allow or block comment submission", ("allow", "block")),
    "force_https": SettingInfo(
        "Protocol redirect, 'null' keeps the requested protocol",
        ("null", "http", "https")),
    "unfiltered_html": SettingInfo(
        "Allow unfiltered HTML in requests", ("allow", "block")),
    "block_php_upload": SettingInfo(
        "Block uploads of PHP files", ("allow", "block")),
    "detect_adv_evasion": SettingInfo(
        "Detect advanced evasion techniques", ("enabled", "disabled")),
    "aggressive_bot_filter": SettingInfo(
        "Aggressive filtering of bots", ("enabled", "disabled")),
    "compression_mode": SettingInfo(
        "Gzip compression of responses", ("enabled", "disabled")),
    "cache_mode": SettingInfo(
        "Caching level", ("docache", "sitecache", "nocache", "nocacheatall")),
    "internal_ip_main": SettingInfo(
        "Origin server IP address the firewall forwards to"),
    "internal_ip_alternate": SettingInfo(
        "Alternate origin server IP address"),
    "max_upload_size": SettingInfo(
        "Largest accepted upload size, for example 10M"),
    "http_headers": SettingInfo(
        "Security headers profile, for example 'strict' or 'none'"),
}


def validate_setting(key: str, value: str) -> None:
    """
    Check a setting before it is sent.

    Raises:
        SettingError: If the key is blank or an enumerated value is unknown
    """
    if not key:
        raise SettingError("Setting name must not be empty")

    info = KNOWN_SETTINGS.get(key)
    if info is None:
        logger.warning(f"Unknown setting '{key}', passing it to the API unchecked")
        return

    if info.values is not None and value not in info.values:
        raise SettingError(
            f"Invalid value '{value}' for setting '{key}' "
            f"(allowed: {', '.join(info.values)})"
        )


def format_settings_help() -> str:
    """Render the list of known settings for --settings-help."""
    width = max(len(key) for key in KNOWN_SETTINGS)
    lines = [
        "Settings can be changed with --setting KEY=VALUE or in the",
        "\"settings\" object of a template. Settings cannot be removed.",
        "",
        f"{'Setting':<{width}}  Description",
        "-" * (width + 2 + 40),
    ]
    for key, info in KNOWN_SETTINGS.items():
        lines.append(f"{key:<{width}}  {info.description}")
        if info.values:
            lines.append(f"{'':<{width}}  values: {' | '.join(info.values)}")
    return "\n".join(lines)
