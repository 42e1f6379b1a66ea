"""
wafctl command-line tool.

Whitelists/blacklists IPs, subnets and URL paths and updates settings on a
Sucuri-protected site.

Usage:
    wafctl --site example.com --whitelist-ip 200.0.0.1,200.0.0.10
    wafctl --site example.com --whitelist-subnet 200.0.0.0/27
    wafctl --site example.com --blacklist-path /xmlrpc.php --path-pattern equals
    wafctl --site example.com --setting security_level=high
    wafctl --site example.com --template template.json
    wafctl --site example.com --whitelist-ip 200.0.0.1 --delete
    wafctl --settings-help

Credentials:
    The API key comes from --key, the template's "apiKey", or the config
    file's "apiKey" (in that order). The API secret comes from --secret, or
    is looked up by site name (--site or the template's "site") in the
    config file's "sites" object.

Exit codes:
    0  all requests succeeded (or nothing to do)
    1  one or more requests failed
    2  invalid usage, configuration or template
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import httpx

from .changes import ChangeOptions, ChangeSetError, WafRequest, build_change_set, show_settings
from .client import SucuriClient, WafApiError
from .config import Config, ConfigError, resolve_credentials
from .models import PATH_PATTERNS, Template
from .runner import RequestOutcome, submit_all, summarize
from .settings import format_settings_help
from .template import TemplateError, load_template
from .utils import set_log_level, setup_logging, split_csv

logger = setup_logging("cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wafctl",
        description="Apply whitelist, blacklist and settings changes to a Sucuri WAF site",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --site example.com --whitelist-ip 200.0.0.1,200.0.0.10
  %(prog)s --site example.com --whitelist-subnet 200.0.0.0/27
  %(prog)s --site example.com --template template.json --dry-run
  %(prog)s --key KEY --secret SECRET --blacklist-ip 203.0.113.7 --delete
  %(prog)s --settings-help
        """
    )

    creds = parser.add_argument_group("credentials")
    creds.add_argument("--key", help="API key for the account")
    creds.add_argument("--secret", help="API secret for the site")
    creds.add_argument("--site", help="Site name to look up in the config file")
    creds.add_argument(
        "--config",
        help="Path to config file (default: CONFIG_FILE env, ./config.json, or beside the executable)"
    )

    changes = parser.add_argument_group("changes")
    changes.add_argument(
        "--template",
        help="Apply all whitelists, blacklists and settings from a template file"
    )
    changes.add_argument(
        "--whitelist-ip", action="append", default=[], metavar="IP[,IP...]",
        help="Whitelist IP(s), example 200.0.0.1 or 200.0.0.1,200.0.0.10"
    )
    changes.add_argument(
        "--blacklist-ip", action="append", default=[], metavar="IP[,IP...]",
        help="Blacklist IP(s)"
    )
    changes.add_argument(
        "--whitelist-subnet", action="append", default=[], metavar="CIDR[,CIDR...]",
        help="Whitelist every usable host of the subnet(s), example 200.0.0.0/27"
    )
    changes.add_argument(
        "--blacklist-subnet", action="append", default=[], metavar="CIDR[,CIDR...]",
        help="Blacklist every usable host of the subnet(s)"
    )
    changes.add_argument(
        "--whitelist-path", action="append", default=[], metavar="PATH[,PATH...]",
        help="Whitelist URL path(s)"
    )
    changes.add_argument(
        "--blacklist-path", action="append", default=[], metavar="PATH[,PATH...]",
        help="Blacklist URL path(s)"
    )
    changes.add_argument(
        "--path-pattern", default="begins_with", choices=PATH_PATTERNS,
        help="How command-line paths are matched (default: begins_with)"
    )
    changes.add_argument(
        "--setting", action="append", default=[], metavar="KEY=VALUE",
        help="Change a setting (see --settings-help)"
    )
    changes.add_argument(
        "--delete", action="store_true",
        help="Remove entries instead of adding them (settings can't be removed)"
    )

    run = parser.add_argument_group("execution")
    run.add_argument("--dry-run", action="store_true", help="Print the planned requests without sending them")
    run.add_argument("--show-settings", action="store_true", help="Print the site's current settings")
    run.add_argument("--settings-help", action="store_true", help="List the settings that can be changed and exit")
    run.add_argument("--concurrency", type=int, help="Requests in flight at once (default: SUCURI_CONCURRENCY or 10)")
    run.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def options_from_args(args: argparse.Namespace) -> ChangeOptions:
    return ChangeOptions(
        whitelist_ips=split_csv(args.whitelist_ip),
        blacklist_ips=split_csv(args.blacklist_ip),
        whitelist_subnets=split_csv(args.whitelist_subnet),
        blacklist_subnets=split_csv(args.blacklist_subnet),
        whitelist_paths=split_csv(args.whitelist_path),
        blacklist_paths=split_csv(args.blacklist_path),
        path_pattern=args.path_pattern,
        settings=list(args.setting),
        delete=args.delete,
    )


def print_plan(requests: List[WafRequest]) -> None:
    print(f"Planned requests: {len(requests)}")
    for request in requests:
        print(f"  + {request}")
    print("Dry run enabled. No changes applied.")


def print_outcomes(outcomes: List[RequestOutcome]) -> None:
    for outcome in outcomes:
        if outcome.ok:
            detail = "; ".join(outcome.messages)
            print(f"OK     {outcome.request}" + (f": {detail}" if detail else ""))
        else:
            print(f"FAILED {outcome.request}: {outcome.error}")
    succeeded, failed = summarize(outcomes)
    print(f"\nTotal: {len(outcomes)} request(s), {succeeded} succeeded, {failed} failed")


async def _apply(
    client: SucuriClient,
    requests: List[WafRequest],
    concurrency: int,
    want_settings: bool,
) -> int:
    exit_code = EXIT_OK
    async with client:
        if requests:
            outcomes = await submit_all(client, requests, concurrency)
            print_outcomes(outcomes)
            if summarize(outcomes)[1]:
                exit_code = EXIT_FAILED

        if want_settings:
            try:
                response = await client.submit(show_settings())
            except WafApiError as e:
                print(f"Error: unable to read settings: {e}")
                return EXIT_FAILED
            print(json.dumps(response.output, indent=2, sort_keys=True))

    return exit_code


def main(argv: Optional[List[str]] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.settings_help:
        print(format_settings_help())
        return EXIT_OK

    try:
        config = Config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        return EXIT_USAGE

    level = logging.getLevelName(config.log_level)
    set_log_level(logging.DEBUG if args.verbose else (level if isinstance(level, int) else logging.INFO))
    logger.debug(f"Config file: {config.config_file_path or 'none'}")

    template: Optional[Template] = None
    if args.template:
        try:
            template = load_template(args.template)
        except TemplateError as e:
            print(f"Error: {e}")
            return EXIT_USAGE

    options = options_from_args(args)
    try:
        requests = build_change_set(options, template, config.max_subnet_hosts)
    except (ChangeSetError, ConfigError) as e:
        print(f"Error: {e}")
        return EXIT_USAGE

    if not requests and not args.show_settings:
        if template is not None:
            print("No changes requested")
            return EXIT_OK
        parser.print_help()
        return EXIT_USAGE

    if args.dry_run:
        print_plan(requests)
        return EXIT_OK

    try:
        credentials = resolve_credentials(
            config.site_config,
            template,
            key=args.key,
            secret=args.secret,
            site=args.site,
        )
        concurrency = args.concurrency or config.concurrency
        client = SucuriClient(
            api_key=credentials.api_key,
            api_secret=credentials.api_secret,
            api_url=config.api_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            transport=transport,
        )
    except ConfigError as e:
        print(f"Error: {e}")
        return EXIT_USAGE

    if credentials.site:
        logger.info(f"Applying {len(requests)} request(s) to site: {credentials.site}")

    return asyncio.run(_apply(client, requests, concurrency, args.show_settings))


if __name__ == "__main__":
    sys.exit(main())
