"""
File schemas and API response models for wafctl.
"""
import ipaddress
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PATH_PATTERNS = ("begins_with", "ends_with", "matches", "equals")


def _check_ipv4(v: str) -> str:
    try:
        ipaddress.IPv4Address(v.strip())
    except ValueError:
        raise ValueError(f"Invalid IPv4 address: '{v}'")
    return v.strip()


def _check_ipv4_network(v: str) -> str:
    try:
        ipaddress.IPv4Network(v.strip(), strict=False)
    except ValueError:
        raise ValueError(f"Invalid IPv4 subnet: '{v}'")
    return v.strip()


def _check_paths(v: Dict[str, str]) -> Dict[str, str]:
    for path, pattern in v.items():
        if not path:
            raise ValueError("Path must not be empty")
        if pattern not in PATH_PATTERNS:
            raise ValueError(
                f"Path '{path}' has unknown pattern '{pattern}' "
                f"(allowed: {', '.join(PATH_PATTERNS)})"
            )
    return v


class ConfigFile(BaseModel):
    """
    Site-config file (config.json).

    Holds the account API key and one API secret per site. Other keys are
    allowed so runtime settings can share the same file.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_key: Optional[str] = Field(None, alias="apiKey")
    sites: Dict[str, str] = Field(default_factory=dict)


class Template(BaseModel):
    """
    Batch of desired WAF changes.

    Top-level fields are strictly enforced so a misspelled key is reported
    instead of silently ignored.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    api_key: Optional[str] = Field(None, alias="apiKey")
    site: Optional[str] = None
    whitelist_ips: List[str] = Field(default_factory=list, alias="whitelistIPs")
    blacklist_ips: List[str] = Field(default_factory=list, alias="blacklistIPs")
    whitelist_subnets: List[str] = Field(default_factory=list, alias="whitelistSubnets")
    blacklist_subnets: List[str] = Field(default_factory=list, alias="blacklistSubnets")
    whitelist_paths: Dict[str, str] = Field(default_factory=dict, alias="whitelistPaths")
    blacklist_paths: Dict[str, str] = Field(default_factory=dict, alias="blacklistPaths")
    settings: Dict[str, str] = Field(default_factory=dict)

    @field_validator("whitelist_ips", "blacklist_ips")
    @classmethod
    def validate_ips(cls, v: List[str]) -> List[str]:
        return [_check_ipv4(ip) for ip in v]

    @field_validator("whitelist_subnets", "blacklist_subnets")
    @classmethod
    def validate_subnets(cls, v: List[str]) -> List[str]:
        return [_check_ipv4_network(cidr) for cidr in v]

    @field_validator("whitelist_paths", "blacklist_paths")
    @classmethod
    def validate_paths(cls, v: Dict[str, str]) -> Dict[str, str]:
        return _check_paths(v)

    def is_empty(self) -> bool:
        """True when the template requests no changes."""
        return not any([
            self.whitelist_ips, self.blacklist_ips,
            self.whitelist_subnets, self.blacklist_subnets,
            self.whitelist_paths, self.blacklist_paths,
            self.settings,
        ])


class ApiResponse(BaseModel):
    """JSON envelope returned by the WAF API."""
    model_config = ConfigDict(extra="allow")

    status: int = 0
    action: Optional[str] = None
    messages: List[str] = Field(default_factory=list)
    output: Any = None

    @field_validator("messages", mode="before")
    @classmethod
    def coerce_messages(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(m) for m in v]

    @property
    def ok(self) -> bool:
        return self.status == 1
