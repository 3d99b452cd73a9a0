"""
Library Shell - command line entry point

Scans the configured volumes, optionally resolves one title and lists its
launch candidates.
"""

import argparse
import asyncio
import sys

from library_shell import __version__
from library_shell.config import config_manager
from library_shell.exclusions import get_exclusion_rules
from library_shell.executables import ExecutableCandidateEnumerator, detect_launch_action
from library_shell.identity import IdentityResolver
from library_shell.installed_apps import ensure_installed_apps_catalog_async
from library_shell.logger import setup_logger
from library_shell.scanner import LibraryScanner
from library_shell.store_lookup import StoreIdResolver, load_store_catalog
from library_shell.task_registry import cancel_all_tasks
from library_shell.volumes import get_volumes


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Scan game and media libraries across volumes")
    parser.add_argument("--title", help="resolve one title and list its launch candidates")
    parser.add_argument("--store-id", action="store_true", help="also look up the title's store id")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


async def resolve_title(title, volumes, catalog, logger, with_store_id):
    resolver = IdentityResolver(volumes, catalog)
    instances = resolver.resolve(title)
    for instance in instances:
        logger.info(f"Instance: {instance.name} [{instance.folder or 'not on disk'}] store id {instance.store_id}")
        logger.info(f"Action: {detect_launch_action(instance, volumes)}")

    data_dir = config_manager.get_data_dir()
    enumerator = ExecutableCandidateEnumerator(
        get_exclusion_rules(data_dir / "Exclusions.txt"),
        steam_exe=config_manager.get_steam_exe(),
    )
    for candidate in await enumerator.enumerate_async(instances):
        logger.info(f"Candidate: {candidate.value}")

    if with_store_id:
        store_id = await StoreIdResolver(volumes, catalog).resolve_store_id(title)
        logger.info(f"Store id for '{title}': {store_id or 'not found'}")


async def main(argv=None):
    args = parse_args(argv)
    logger = setup_logger()
    logger.info(f"Library Shell {__version__} starting...")

    volumes = get_volumes()
    logger.info(f"Volumes: {', '.join(str(v) for v in volumes) or 'none'}")

    apps_path = config_manager.get_data_dir() / "installed_apps.json"
    await ensure_installed_apps_catalog_async(apps_path)

    result = await asyncio.to_thread(LibraryScanner(volumes, apps_path).scan)
    for title in result.all_titles():
        logger.debug(f"{title.kind}: {title.name}")

    if args.title:
        catalog = load_store_catalog(config_manager.get_store_catalog_file())
        await resolve_title(args.title, volumes, catalog, logger, args.store_id)

    await cancel_all_tasks()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
