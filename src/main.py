import argparse
import os
import sys
from datetime import datetime

from dotenv import load_dotenv

from constants import (
    ERROR_CONFIGURATION, ERROR_RECONCILIATION, ERROR_SHARDING, HASH_ALGORITHM,
    LDAP_PAGE_SIZE, LDAP_SHARD_VERBOSITY, LOG_DIR,
)
from hash_service import UnsupportedHashAlgorithmError, resolve_algorithm
from ldap_service import LdapService
from log_service import close_logging, configure_logging
from models import ShardSettings
from shard_service import GroupSharder

"""
 *
 * LDAP PyShard
 *
 * Spreads the computer objects of one or more OUs over a fixed set of
 * sixteen groups (<prefix>0 .. <prefix>F).
 *
 * Each computer name is hashed (SHA256 by default) and the last hex digit
 * of the digest picks the group. The assignment needs no table: the same
 * name always lands in the same group.
 *
 * A run:
 *
 *      Step                Reads                               Writes
 *      Group inventory     groups <prefix>*, nested members    -
 *      Enumeration         computers of each machine OU        -
 *      Reconciliation      members of the assigned group       member add
 *
 * Only missing memberships are added; nothing is ever removed.
 * Settings come from the .config file / environment, command line wins.
 *
 """


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> list:
    return [value.strip() for value in os.getenv(name, "").split(";") if value.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ldap-pyshard",
        description="Assign computer objects to hash-sharded AD groups.",
    )
    parser.add_argument(
        "--machine-ou", action="append", dest="machine_ous", metavar="DN",
        help="OU holding the computers to assign (repeatable, default MACHINE_OU_LIST)",
    )
    parser.add_argument("--group-prefix", help="Base name of the target groups (default GROUP_PREFIX)")
    parser.add_argument("--group-ou", help="OU holding the target groups (default GROUP_OU)")
    parser.add_argument(
        "--recursive", action="store_true", default=None,
        help="Search the OUs recursively instead of immediate children only",
    )
    parser.add_argument("--hash-algorithm", help=f"MD5, SHA1, SHA256, SHA384 or SHA512 (default {HASH_ALGORITHM})")
    parser.add_argument(
        "--deduplicate", action="store_true", default=None,
        help="Process a machine name found in several OUs only once",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report the additions without writing them")
    parser.add_argument("--log-dir", help=f"Directory of the per-run log files (default {LOG_DIR})")
    parser.add_argument(
        "--verbosity", type=int, choices=(0, 1, 2, 3),
        help="0 = errors, 1 = successes, 2 = info, 3 = debug",
    )
    return parser


def load_settings(args: argparse.Namespace, parser: argparse.ArgumentParser) -> ShardSettings:
    """Merges command line arguments over the environment."""
    machine_ous = args.machine_ous or _env_list("MACHINE_OU_LIST")
    group_prefix = args.group_prefix or os.getenv("GROUP_PREFIX")
    group_ou = args.group_ou or os.getenv("GROUP_OU")

    missing = [
        option for option, value in (
            ("--machine-ou", machine_ous), ("--group-prefix", group_prefix), ("--group-ou", group_ou)
        ) if not value
    ]
    if missing:
        parser.error(f"missing required settings: {', '.join(missing)}")

    return ShardSettings(
        machine_ous=tuple(machine_ous),
        group_prefix=group_prefix,
        group_ou=group_ou,
        recursive=args.recursive if args.recursive is not None else _env_flag("RECURSIVE_SEARCH"),
        hash_algorithm=args.hash_algorithm or os.getenv("HASH_ALGORITHM", HASH_ALGORITHM),
        deduplicate_machines=args.deduplicate if args.deduplicate is not None else _env_flag("DEDUPLICATE_MACHINES"),
        dry_run=args.dry_run,
    )


def main(argv=None) -> int:
    #loads the environment variables
    load_dotenv(".config")

    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args, parser)

    log_dir = args.log_dir or os.getenv("LOG_DIR", LOG_DIR)
    verbosity = args.verbosity if args.verbosity is not None else int(os.getenv("LDAP_SHARD_VERBOSITY", LDAP_SHARD_VERBOSITY))
    logger = configure_logging(log_dir, datetime.now(), verbosity)

    try:
        try:
            resolve_algorithm(settings.hash_algorithm)
        except UnsupportedHashAlgorithmError as error:
            logger.error(str(error))
            return ERROR_CONFIGURATION

        ldap = LdapService(logger, page_size=int(os.getenv("LDAP_PAGE_SIZE", LDAP_PAGE_SIZE)))
        result = GroupSharder(ldap, settings, logger).run()

        if not result.succeeded:
            logger.error(f"{result.failed} machine(s) could not be added to their group")
            return ERROR_RECONCILIATION
        return 0

    except Exception as error:
        logger.exception(f"Error while sharding computer groups: {error}")
        return ERROR_SHARDING

    finally:
        close_logging(logger)


if __name__ == "__main__":
    sys.exit(main())
