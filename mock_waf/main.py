"""
Mock Sucuri WAF API for local runs and tests.

Implements the subset of API v2 actions wafctl uses, with in-memory state
per site. Run on port 8000 and point wafctl at it:

    SUCURI_API_URL="http://localhost:8000/api?v2" wafctl --key test-key --secret test-secret ...

Credentials come from MOCK_API_KEY and MOCK_API_SECRET (defaults:
test-key / test-secret for site example.com).
"""
import ipaddress
import os
import sys
from typing import Dict, List, Optional
from urllib.parse import parse_qs

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

app = FastAPI(title="Mock Sucuri WAF API", version="1.0.0")

DEFAULT_CREDENTIALS = {
    os.environ.get("MOCK_API_KEY", "test-key"): {
        os.environ.get("MOCK_API_SECRET", "test-secret"): "example.com",
    }
}

# api key -> {api secret -> site name}
credentials: Dict[str, Dict[str, str]] = {}

# site name -> state
sites: Dict[str, dict] = {}


def _new_site_state() -> dict:
    return {
        "whitelist": [],
        "blacklist": [],
        "allowlist_dirs": {},
        "blocklist_dirs": {},
        "settings": {"security_level": "high", "admin_access": "open"},
    }


def reset_state(new_credentials: Optional[Dict[str, Dict[str, str]]] = None) -> None:
    """Forget all changes and install a credentials table."""
    credentials.clear()
    credentials.update(new_credentials or DEFAULT_CREDENTIALS)
    sites.clear()
    for site_map in credentials.values():
        for site in site_map.values():
            sites[site] = _new_site_state()


reset_state()


def _reply(action: Optional[str], ok: bool, messages: List[str], output=None) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": 1 if ok else 0,
            "action": action,
            "messages": messages,
            "output": output if output is not None else [],
        }
    )


def _valid_ip(ip: str) -> bool:
    try:
        ipaddress.IPv4Address(ip)
    except ValueError:
        return False
    return True


def _change_ip_list(state: dict, list_name: str, ip: str, delete: bool, action: str) -> JSONResponse:
    if not _valid_ip(ip):
        return _reply(action, False, [f"Invalid IP address: {ip}"])

    entries = state[list_name]
    if delete:
        if ip not in entries:
            return _reply(action, False, [f"The IP {ip} is not in the {list_name}"])
        entries.remove(ip)
        return _reply(action, True, [f"The IP {ip} has been removed from the {list_name}"])

    if ip not in entries:
        entries.append(ip)
    return _reply(action, True, [f"The IP {ip} has been added to the {list_name}"])


def _update_settings(state: dict, params: Dict[str, str]) -> JSONResponse:
    action = "update_setting"
    messages = []

    for kind in ("allowlist", "blocklist"):
        dirs = state[f"{kind}_dirs"]
        pattern = params.pop(f"{kind}_dir_pattern", "begins_with")
        if f"{kind}_dir" in params:
            path = params.pop(f"{kind}_dir")
            dirs[path] = pattern
            messages.append(f"Path {path} added to the {kind}")
        if f"remove_{kind}_dir" in params:
            path = params.pop(f"remove_{kind}_dir")
            if path not in dirs:
                return _reply(action, False, [f"Path {path} is not in the {kind}"])
            del dirs[path]
            messages.append(f"Path {path} removed from the {kind}")

    for key, value in params.items():
        state["settings"][key] = value
        messages.append(f"Setting {key} updated")

    if not messages:
        return _reply(action, False, ["No setting was specified"])
    return _reply(action, True, messages)


@app.post("/api")
async def api(request: Request):
    """Single API endpoint; the action is chosen by the 'a' form field."""
    body = (await request.body()).decode("utf-8")
    params = {key: values[-1] for key, values in parse_qs(body, keep_blank_values=True).items()}

    api_key = params.pop("k", "")
    api_secret = params.pop("s", "")
    action = params.pop("a", None)

    site = credentials.get(api_key, {}).get(api_secret)
    if site is None:
        return _reply(action, False, ["Invalid API key or secret"])

    state = sites[site]
    print(f"[MOCK WAF] site={site} action={action} params={params}", file=sys.stderr)

    if action in ("whitelist_ip", "delete_whitelist_ip"):
        return _change_ip_list(state, "whitelist", params.get("ip", ""), action.startswith("delete_"), action)
    if action in ("blacklist_ip", "delete_blacklist_ip"):
        return _change_ip_list(state, "blacklist", params.get("ip", ""), action.startswith("delete_"), action)
    if action == "update_setting":
        return _update_settings(state, params)
    if action == "show_settings":
        output = dict(state["settings"])
        output["whitelist_list"] = list(state["whitelist"])
        output["blacklist_list"] = list(state["blacklist"])
        output["allowlist_dirs"] = dict(state["allowlist_dirs"])
        output["blocklist_dirs"] = dict(state["blocklist_dirs"])
        return _reply(action, True, [], output)

    return _reply(action, False, [f"Invalid action: {action}"])


@app.get("/state")
async def dump_state():
    """Current state of every site (for debugging)."""
    return sites


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
