"""Summary: Command-line interface for InboxSift.

Importance: Provides a local-first entry point for ingestion, extraction, and review.
Alternatives: Build a web UI or desktop client first.
"""

from __future__ import annotations

import argparse
import json
import logging

from inboxsift.app import build_context, build_job_runner, default_workspace
from inboxsift.config import AppConfig
from inboxsift.jobs import ExtractionJob
from inboxsift.models import InboxItemSource, InboxItemStatus, SuggestionStatus, SuggestionType


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="InboxSift CLI")
    parser.add_argument("--workspace-id", type=int, default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_workspace = subparsers.add_parser("create-workspace", help="Create a workspace")
    create_workspace.add_argument("name", type=str)
    create_workspace.add_argument("--timezone", type=str, default="UTC")
    create_workspace.add_argument("--locale", type=str, default="en")

    add_item = subparsers.add_parser("add-item", help="Add an inbox item")
    add_item.add_argument("content", type=str)
    add_item.add_argument("--subject", type=str, default=None)
    add_item.add_argument(
        "--source", choices=[InboxItemSource.MANUAL.value, InboxItemSource.SHARE.value], default="manual"
    )

    list_items = subparsers.add_parser("list-items", help="List inbox items")
    list_items.add_argument("--status", choices=[status.value for status in InboxItemStatus])
    list_items.add_argument("--limit", type=int, default=15)

    show_item = subparsers.add_parser("show-item", help="Show an inbox item with suggestions")
    show_item.add_argument("item_id", type=int)

    extract = subparsers.add_parser("extract", help="Run extraction for an inbox item")
    extract.add_argument("item_id", type=int)

    archive = subparsers.add_parser("archive", help="Archive an inbox item")
    archive.add_argument("item_id", type=int)

    list_suggestions = subparsers.add_parser("list-suggestions", help="List suggestions")
    list_suggestions.add_argument("--status", choices=[status.value for status in SuggestionStatus])
    list_suggestions.add_argument("--type", choices=[kind.value for kind in SuggestionType])
    list_suggestions.add_argument("--limit", type=int, default=20)

    accept = subparsers.add_parser("accept", help="Accept a suggestion")
    accept.add_argument("suggestion_id", type=int)

    reject = subparsers.add_parser("reject", help="Reject a suggestion")
    reject.add_argument("suggestion_id", type=int)

    subparsers.add_parser("serve", help="Run the HTTP API")

    return parser


def run_cli(argv: list[str] | None = None, config: AppConfig | None = None) -> int:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives the review workflow without a UI.
    Alternatives: Invoke services via an HTTP API.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = config or AppConfig.from_env()

    if args.command == "serve":
        import uvicorn

        from inboxsift.api import create_app

        uvicorn.run(create_app(config), host=config.api_host, port=config.api_port)
        return 0

    context = build_context(config)
    workspace_id = args.workspace_id or default_workspace(context).id
    services = context.services_for_workspace(workspace_id)

    if args.command == "create-workspace":
        workspace = services.workspaces.create_workspace(args.name, args.timezone, args.locale)
        print(f"Created workspace {workspace.id} ({workspace.name}).")
        print(f"Inbound token: {workspace.inbound_email_token}")
        return 0

    if args.command == "add-item":
        item = services.inbox.create_item(
            raw_content=args.content, raw_subject=args.subject, source=InboxItemSource(args.source)
        )
        print(f"Created inbox item {item.id}.")
        return 0

    if args.command == "list-items":
        status = InboxItemStatus(args.status) if args.status else None
        for item in services.inbox.list_items(status=status, limit=args.limit):
            subject = item.raw_subject or "(No subject)"
            print(f"{item.id}\t{item.status.value}\t{item.source.value}\t{subject}")
        return 0

    if args.command == "show-item":
        item = services.inbox.get_item(args.item_id)
        latest = services.inbox.latest_extraction(item.id)
        print(f"Subject: {item.raw_subject or '(No subject)'}")
        print(f"Status: {item.status.value}")
        print(f"Extractions: {len(services.inbox.list_extractions(item.id))}")
        if latest:
            print(f"Latest extraction: {latest.id} ({latest.model_version}, {latest.prompt_version})")
        for suggestion in services.inbox.list_item_suggestions(item.id):
            print(
                f"- [{suggestion.id}] {suggestion.type.value} {suggestion.status.value}: "
                f"{json.dumps(suggestion.payload)}"
            )
        return 0

    if args.command == "extract":
        item = services.inbox.ensure_extractable(args.item_id)
        runner = build_job_runner(context, workers=1)
        try:
            extraction = runner.run(ExtractionJob(inbox_item_id=item.id, workspace_id=workspace_id))
        finally:
            runner.shutdown()
        if extraction is None:
            print(f"Extraction failed for inbox item {item.id}.")
            return 1
        count = len(context.store.list_suggestions_for_extraction(extraction.id))
        print(f"Extraction {extraction.id} created {count} suggestions.")
        return 0

    if args.command == "archive":
        item = services.inbox.archive_item(args.item_id)
        print(f"Inbox item {item.id} is {item.status.value}.")
        return 0

    if args.command == "list-suggestions":
        suggestions = services.suggestions.list_suggestions(
            status=SuggestionStatus(args.status) if args.status else None,
            suggestion_type=SuggestionType(args.type) if args.type else None,
            limit=args.limit,
        )
        for suggestion in suggestions:
            print(
                f"{suggestion.id}\t{suggestion.type.value}\t{suggestion.status.value}\t"
                f"{json.dumps(suggestion.payload)}"
            )
        return 0

    if args.command in {"accept", "reject"}:
        resolve = services.suggestions.accept if args.command == "accept" else services.suggestions.reject
        suggestion = resolve(args.suggestion_id)
        print(f"Suggestion {suggestion.id} is {suggestion.status.value}.")
        return 0

    parser.error(f"Unknown command {args.command}")
    return 2


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
