"""
policyctl command-line entry point.
"""

import logging

import yaml

from policyctl.codec import decode_file, encode
from policyctl.config import Config, load_config
from policyctl.errors import PolicyError
from policyctl.services.policy_store import PolicyStore
from policyctl.utils.paths import get_file_path, rewrite_file


logger = logging.getLogger(__name__)


def _resolve_config(args) -> Config:
    """Load the config file if one was given, then apply flag overrides."""
    config = load_config(get_file_path(args.config)) if args.config else Config()

    if args.file is not None:
        config.policy.path = args.file
    if args.database is not None:
        config.database.path = args.database

    return config


def cmd_get(args, config: Config) -> int:
    """Print the stored policy, optionally writing it to the policy file."""
    db_path = get_file_path(config.database.path)

    try:
        with PolicyStore.open(db_path, config.database) as store:
            policy = store.fetch_policy()
    except PolicyError as e:
        print(f"Error: {e}")
        return 1

    text = encode(policy, pretty=True, indent=config.policy.indent)
    print(text)

    if args.write:
        policy_path = get_file_path(config.policy.path)
        try:
            rewrite_file(policy_path, text)
        except OSError as e:
            print(f"Error: Cannot write policy file {policy_path}: {e}")
            return 1
        logger.info(f"Policy written to {policy_path}")

    return 0


def cmd_set(args, config: Config) -> int:
    """Replace the stored policy with the contents of the policy file."""
    policy_path = get_file_path(config.policy.path)

    # Decode before touching the database so a bad file changes nothing
    try:
        policy = decode_file(policy_path)
    except PolicyError as e:
        print(f"Error: {e}")
        return 1

    db_path = get_file_path(config.database.path)
    try:
        with PolicyStore.open(db_path, config.database) as store:
            updated = store.replace_policy(policy)
    except PolicyError as e:
        print(f"Error: {e}")
        return 1

    if updated == 0:
        logger.warning("No organization rows exist, policy was not stored")
    return 0


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Get or set the access-control policy stored in the local database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-a", "--action",
        choices=["get", "set"],
        default="get",
        help="get/set acl policy (default: get)",
    )
    parser.add_argument(
        "-f", "--file",
        default=None,
        help="file path to the policy json (default: policy.json)",
    )
    parser.add_argument(
        "-w", "--write",
        action="store_true",
        help="write to file when getting the policy",
    )
    parser.add_argument(
        "-d", "--database",
        default=None,
        help="database file (default: db.sqlite)",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="optional YAML configuration file",
    )

    args = parser.parse_args(argv)

    try:
        config = _resolve_config(args)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        return 1

    # Logs go to stderr so stdout only carries the policy
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.action == "get":
        return cmd_get(args, config)
    return cmd_set(args, config)


if __name__ == "__main__":
    exit(main())
