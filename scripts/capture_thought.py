"""Capture and review thoughts from the terminal.

Runs the dashboard view state either in-process against the configured
entry store, or against a running API with ``--api-url``.
"""

from __future__ import annotations

import argparse
import sys
from contextlib import ExitStack
from typing import Sequence

from backend.app.config import Settings, load_settings
from backend.app.domain.dashboard import DashboardViewState, SettingsStore
from backend.app.domain.entries import EntryService
from backend.app.domain.entrystore import Entry, build_entry_store_gateway
from backend.app.infra.api_client import LuminaApiClient
from backend.app.infra.llm_gateway import build_insight_provider
from backend.app.infra.logging import configure_logging


def build_view_state(
    settings: Settings, stack: ExitStack, *, api_url: str | None, user_id: str | None
) -> DashboardViewState:
    store = SettingsStore(
        settings.client.settings_path,
        default_locale=settings.client.default_locale,  # type: ignore[arg-type]
    )
    if api_url:
        client = stack.enter_context(LuminaApiClient(api_url, user_id=user_id))
        return DashboardViewState(
            source=client,
            provider=client,
            settings_store=store,
            focus_limit=settings.entries.focus_recent_limit,
        )
    provider = build_insight_provider(settings)
    service = EntryService(
        gateway=build_entry_store_gateway(settings),
        provider=provider,
        focus_recent_limit=settings.entries.focus_recent_limit,
    )
    return DashboardViewState(
        source=service,
        provider=provider,
        settings_store=store,
        shared_api_key=settings.shared_api_key,
        focus_limit=settings.entries.focus_recent_limit,
    )


def format_entry(entry: Entry) -> str:
    metadata = entry.metadata
    header = (
        f"#{entry.id} [{metadata.get('category', '?')}/{metadata.get('priority', '?')}] "
        f"{entry.created_at:%Y-%m-%d %H:%M}"
    )
    lines = [header, f"  {entry.content}"]
    if metadata.get("summary"):
        lines.append(f"  > {metadata['summary']}")
    for step in metadata.get("nextSteps") or []:
        lines.append(f"    - {step}")
    return "\n".join(lines)


def run(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_logging(settings)
    with ExitStack() as stack:
        view = build_view_state(
            settings, stack, api_url=args.api_url, user_id=args.user_id
        )
        if args.command == "lang":
            view.set_locale(args.locale)
            print(f"Locale set to {view.locale}")
            return 0
        if args.command == "key":
            if args.clear:
                view.clear_api_key()
                print(view.credential_label)
                return 0
            valid = view.set_api_key(args.api_key or "")
            print(view.alert)
            return 0 if valid else 1

        view.refresh()
        if view.alert:
            print(view.alert, file=sys.stderr)
            return 1
        if args.command == "add":
            entry = view.submit(" ".join(args.text), args.type)
            if entry is None:
                if view.alert:
                    print(view.alert, file=sys.stderr)
                    return 1
                return 0
            print(format_entry(entry))
        elif args.command == "delete":
            if not view.delete(args.entry_id):
                print(view.alert, file=sys.stderr)
                return 1
        elif args.command == "list":
            for entry in view.entries:
                print(format_entry(entry))
        print(f"\n{view.credential_label} | {view.daily_focus}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--api-url",
        default=None,
        help="Base URL of a running Lumina API; omit to use the local entry store.",
    )
    parser.add_argument("--user-id", default=None, help="Caller id sent to the API.")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Classify and store a thought.")
    add.add_argument("text", nargs="+")
    add.add_argument("--type", default="thought")

    commands.add_parser("list", help="List entries, newest first.")
    commands.add_parser("focus", help="Show the daily focus.")

    delete = commands.add_parser("delete", help="Delete an entry by id.")
    delete.add_argument("entry_id", type=int)

    lang = commands.add_parser("lang", help="Switch the display language.")
    lang.add_argument("locale", choices=("fr", "en"))

    key = commands.add_parser("key", help="Validate and save a personal API key.")
    key.add_argument("api_key", nargs="?")
    key.add_argument("--clear", action="store_true", help="Revert to the shared key.")

    args = parser.parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
