"""Headless maintenance CLI for voltvault backing stores."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from . import __version__
from .core import SnapshotSecretsMetadataStore
from .errors import SecretStoreError
from .models import DeletedSecret, SecretVersion
from .utils.logbook import configure_logging
from .utils.settings import StoreSettings

MASK = "***"

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voltvaultctl", description="voltvault secret store maintenance")
    parser.add_argument("--version", action="store_true", help="Display version information and exit")
    parser.add_argument("--store", default=None, help="Backing store file (defaults to VOLTVAULT_STORE_PATH)")
    parser.add_argument("--json", action="store_true", dest="as_json", help="Emit JSON instead of tables")
    subparsers = parser.add_subparsers(dest="command")

    set_cmd = subparsers.add_parser("set", help="Store a new secret version")
    set_cmd.add_argument("name")
    set_cmd.add_argument("value")
    set_cmd.add_argument("--content-type", default=None)
    set_cmd.add_argument("--tag", action="append", default=[], help="Tag as key=value (repeatable)")

    get_cmd = subparsers.add_parser("get", help="Show a secret version")
    get_cmd.add_argument("name")
    get_cmd.add_argument("--secret-version", default=None, dest="secret_version")
    get_cmd.add_argument("--values", action="store_true", help="Include the secret value")

    list_cmd = subparsers.add_parser("list", help="List active secrets")
    list_cmd.add_argument("--max-results", type=int, default=None)
    list_cmd.add_argument("--marker", default=None)

    versions_cmd = subparsers.add_parser("versions", help="List the versions of a secret")
    versions_cmd.add_argument("name")
    versions_cmd.add_argument("--max-results", type=int, default=None)
    versions_cmd.add_argument("--marker", default=None)

    update_cmd = subparsers.add_parser("update", help="Update version attributes")
    update_cmd.add_argument("name")
    update_cmd.add_argument("secret_version")
    update_cmd.add_argument("--content-type", default=None)
    toggle = update_cmd.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_const", const=True, dest="enabled")
    toggle.add_argument("--disable", action="store_const", const=False, dest="enabled")
    update_cmd.add_argument("--tag", action="append", default=None, help="Replace tags with key=value pairs")

    delete_cmd = subparsers.add_parser("delete", help="Soft delete a secret")
    delete_cmd.add_argument("name")

    deleted_cmd = subparsers.add_parser("deleted", help="Show deleted secrets")
    deleted_cmd.add_argument("name", nargs="?", default=None)
    deleted_cmd.add_argument("--max-results", type=int, default=None)
    deleted_cmd.add_argument("--marker", default=None)

    recover_cmd = subparsers.add_parser("recover", help="Recover a deleted secret")
    recover_cmd.add_argument("name")

    subparsers.add_parser("clean", help="Erase the backing store")

    return parser


def _parse_tags(pairs: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if pairs is None:
        return None
    tags: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"tag {pair!r} must look like key=value")
        tags[key] = value
    return tags


def version_payload(version: SecretVersion, *, include_value: bool = False) -> Dict[str, Any]:
    attributes = version.attributes
    return {
        "id": version.id,
        "name": version.name,
        "version": version.version,
        "value": version.value if include_value else MASK,
        "contentType": version.content_type,
        "attributes": {
            "enabled": attributes.enabled,
            "notBefore": attributes.not_before,
            "expires": attributes.expires,
            "created": attributes.created,
            "updated": attributes.updated,
            "recoverableDays": attributes.recoverable_days,
            "recoveryLevel": attributes.recovery_level,
        },
        "tags": dict(version.tags),
    }


def deleted_payload(deleted: DeletedSecret) -> Dict[str, Any]:
    payload = version_payload(deleted.latest)
    payload.update(
        {
            "recoveryId": deleted.recovery_id,
            "deletedDate": deleted.deleted_date,
            "scheduledPurgeDate": deleted.scheduled_purge_date,
        }
    )
    return payload


def _versions_table(title: str, versions: Sequence[SecretVersion], marker: Optional[str]) -> Table:
    table = Table(title=title, caption=f"next marker: {marker}" if marker else None)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version", style="magenta")
    table.add_column("Enabled", style="green")
    table.add_column("Updated", style="yellow")
    for version in versions:
        updated = version.attributes.updated.isoformat() if version.attributes.updated else "-"
        table.add_row(version.name, version.version, str(version.attributes.enabled), updated)
    return table


def _deleted_table(deleted: Sequence[DeletedSecret], marker: Optional[str]) -> Table:
    table = Table(title="Deleted secrets", caption=f"next marker: {marker}" if marker else None)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Deleted", style="red")
    table.add_column("Purge after", style="yellow")
    for entry in deleted:
        purge = entry.scheduled_purge_date.isoformat() if entry.scheduled_purge_date else "-"
        table.add_row(entry.name, entry.deleted_date.isoformat(), purge)
    return table


def _handle_set(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    version = store.set_secret(args.name, args.value, content_type=args.content_type, tags=_parse_tags(args.tag))
    return version_payload(version)


def _handle_get(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    return version_payload(store.get_secret(args.name, args.secret_version), include_value=args.values)


def _handle_list(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    versions, marker = store.get_secrets(args.max_results, args.marker)
    if not args.as_json:
        console.print(_versions_table("Secrets", versions, marker))
        return None
    return {"value": [version_payload(version) for version in versions], "nextMarker": marker}


def _handle_versions(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    versions, marker = store.get_secret_versions(args.name, args.max_results, args.marker)
    if not args.as_json:
        console.print(_versions_table(f"Versions of {args.name}", versions, marker))
        return None
    return {"value": [version_payload(version) for version in versions], "nextMarker": marker}


def _handle_update(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    version = store.update_secret(
        args.name,
        args.secret_version,
        content_type=args.content_type,
        enabled=args.enabled,
        tags=_parse_tags(args.tag),
    )
    return version_payload(version)


def _handle_delete(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    return deleted_payload(store.delete_secret(args.name))


def _handle_deleted(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    if args.name:
        return deleted_payload(store.get_deleted_secret(args.name))
    deleted, marker = store.get_deleted_secrets(args.max_results, args.marker)
    if not args.as_json:
        console.print(_deleted_table(deleted, marker))
        return None
    return {"value": [deleted_payload(entry) for entry in deleted], "nextMarker": marker}


def _handle_recover(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    return version_payload(store.recover_deleted_secret(args.name))


Handler = Callable[[SnapshotSecretsMetadataStore, argparse.Namespace], Any]

_HANDLERS: Dict[str, Handler] = {
    "set": _handle_set,
    "get": _handle_get,
    "list": _handle_list,
    "versions": _handle_versions,
    "update": _handle_update,
    "delete": _handle_delete,
    "deleted": _handle_deleted,
    "recover": _handle_recover,
}


def _run(store: SnapshotSecretsMetadataStore, args: argparse.Namespace) -> Any:
    if args.command == "clean":
        store.clean()
        return {"status": "cleaned", "path": str(store.path)}
    handler = _HANDLERS[args.command]
    with store:
        return handler(store, args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        print(f"voltvaultctl {__version__}")
        return 0
    if args.command is None:
        parser.print_help()
        return 1
    configure_logging()
    try:
        settings = StoreSettings.from_env(Path(args.store).expanduser() if args.store else None)
        store = SnapshotSecretsMetadataStore.from_settings(settings)
        result = _run(store, args)
    except (SecretStoreError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if result is not None:
        json.dump(result, sys.stdout, indent=2, default=str)
        sys.stdout.write("\n")
    return 0


__all__ = ["deleted_payload", "main", "version_payload"]
