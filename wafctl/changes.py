"""
WAF requests and change-set building.

Every change is one API call. Flags and the template feed the same lists,
so an entry given on the command line and in a template is handled the
same way (and only once).
"""
import ipaddress
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import PATH_PATTERNS, Template
from .settings import SettingError, validate_setting
from .subnet import SubnetError, expand_subnets
from .utils import dedupe, setup_logging

logger = setup_logging("changes")


class ChangeSetError(Exception):
    """Exception raised when the requested changes are invalid."""
    pass


@dataclass(frozen=True)
class WafRequest:
    """A single API call: the action plus its parameters."""
    action: str
    params: Tuple[Tuple[str, str], ...] = ()
    description: str = ""

    def form_data(self) -> Dict[str, str]:
        """Action and parameters as form fields (credentials excluded)."""
        data = {"a": self.action}
        data.update(dict(self.params))
        return data

    def __str__(self) -> str:
        return self.description or self.action


def whitelist_ip(ip: str, delete: bool = False) -> WafRequest:
    action = "delete_whitelist_ip" if delete else "whitelist_ip"
    verb = "Remove whitelisted IP" if delete else "Whitelist IP"
    return WafRequest(action, (("ip", ip),), f"{verb} {ip}")


def blacklist_ip(ip: str, delete: bool = False) -> WafRequest:
    action = "delete_blacklist_ip" if delete else "blacklist_ip"
    verb = "Remove blacklisted IP" if delete else "Blacklist IP"
    return WafRequest(action, (("ip", ip),), f"{verb} {ip}")


def whitelist_path(path: str, pattern: str, delete: bool = False) -> WafRequest:
    key = "remove_allowlist_dir" if delete else "allowlist_dir"
    verb = "Remove whitelisted path" if delete else "Whitelist path"
    return WafRequest(
        "update_setting",
        ((key, path), ("allowlist_dir_pattern", pattern)),
        f"{verb} {path} ({pattern})",
    )


def blacklist_path(path: str, pattern: str, delete: bool = False) -> WafRequest:
    key = "remove_blocklist_dir" if delete else "blocklist_dir"
    verb = "Remove blacklisted path" if delete else "Blacklist path"
    return WafRequest(
        "update_setting",
        ((key, path), ("blocklist_dir_pattern", pattern)),
        f"{verb} {path} ({pattern})",
    )


def update_setting(key: str, value: str) -> WafRequest:
    return WafRequest("update_setting", ((key, value),), f"Set {key} = {value}")


def show_settings() -> WafRequest:
    return WafRequest("show_settings", (), "Show settings")


@dataclass
class ChangeOptions:
    """Changes requested on the command line."""
    whitelist_ips: List[str] = field(default_factory=list)
    blacklist_ips: List[str] = field(default_factory=list)
    whitelist_subnets: List[str] = field(default_factory=list)
    blacklist_subnets: List[str] = field(default_factory=list)
    whitelist_paths: List[str] = field(default_factory=list)
    blacklist_paths: List[str] = field(default_factory=list)
    path_pattern: str = "begins_with"
    settings: List[str] = field(default_factory=list)
    delete: bool = False


def parse_setting_flags(values: List[str]) -> Dict[str, str]:
    """
    Turn ``KEY=VALUE`` flag values into a dict, later flags winning.

    Raises:
        ChangeSetError: If a value has no '=' or an empty key
    """
    settings: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ChangeSetError(f"Invalid setting '{item}', expected KEY=VALUE")
        settings[key] = value.strip()
    return settings


def _validate_ips(ips: List[str]) -> List[str]:
    valid = []
    for ip in ips:
        try:
            valid.append(str(ipaddress.IPv4Address(ip.strip())))
        except ValueError:
            raise ChangeSetError(f"Invalid IPv4 address: '{ip}'")
    return valid


def _collect_ips(
    flag_ips: List[str],
    template_ips: List[str],
    flag_subnets: List[str],
    template_subnets: List[str],
    max_subnet_hosts: int,
) -> List[str]:
    ips = _validate_ips(flag_ips) + list(template_ips)
    try:
        ips += expand_subnets(list(flag_subnets) + list(template_subnets), max_subnet_hosts)
    except SubnetError as e:
        raise ChangeSetError(str(e))
    return dedupe(ips)


def _collect_paths(flag_paths: List[str], pattern: str, template_paths: Dict[str, str]) -> List[Tuple[str, str]]:
    if flag_paths and pattern not in PATH_PATTERNS:
        raise ChangeSetError(
            f"Unknown path pattern '{pattern}' (allowed: {', '.join(PATH_PATTERNS)})"
        )
    paths = [(path, pattern) for path in flag_paths]
    paths += list(template_paths.items())
    return dedupe(paths)


def build_change_set(
    options: ChangeOptions,
    template: Optional[Template] = None,
    max_subnet_hosts: int = 1024,
) -> List[WafRequest]:
    """
    Build the list of API calls for the requested changes.

    Command-line entries come before template entries. A setting given
    with --setting overrides the same key from the template.

    Raises:
        ChangeSetError: For invalid addresses, subnets, patterns or settings
    """
    template = template or Template()
    delete = options.delete
    requests: List[WafRequest] = []

    for ip in _collect_ips(
        options.whitelist_ips, template.whitelist_ips,
        options.whitelist_subnets, template.whitelist_subnets,
        max_subnet_hosts,
    ):
        requests.append(whitelist_ip(ip, delete))

    for ip in _collect_ips(
        options.blacklist_ips, template.blacklist_ips,
        options.blacklist_subnets, template.blacklist_subnets,
        max_subnet_hosts,
    ):
        requests.append(blacklist_ip(ip, delete))

    for path, pattern in _collect_paths(
        options.whitelist_paths, options.path_pattern, template.whitelist_paths
    ):
        requests.append(whitelist_path(path, pattern, delete))

    for path, pattern in _collect_paths(
        options.blacklist_paths, options.path_pattern, template.blacklist_paths
    ):
        requests.append(blacklist_path(path, pattern, delete))

    settings = dict(template.settings)
    settings.update(parse_setting_flags(options.settings))
    if settings and delete:
        logger.warning(
            f"Settings can't be removed, skipping {len(settings)} setting change(s)"
        )
    elif settings:
        for key, value in settings.items():
            try:
                validate_setting(key, value)
            except SettingError as e:
                raise ChangeSetError(str(e))
            requests.append(update_setting(key, value))

    requests = dedupe(requests)
    logger.debug(f"Built change set with {len(requests)} request(s)")
    return requests
