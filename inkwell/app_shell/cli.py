import argparse
import json
import logging
import sys
from uuid import UUID

from inkwell.adapters.sqlite.migrator import SQLiteMigrator
from inkwell.adapters.sqlite.repos import SQLitePostRepo, SQLiteRedirectRepo
from inkwell.api.deps import Settings, configure_logging
from inkwell.components.redirects import (
    AuditRedirectsInput,
    RedirectConfig,
    ResolveRedirectInput,
    run_audit,
    run_resolve,
)
from inkwell.rules.loader import load_rules

logger = logging.getLogger("cli")


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_resolve(settings: Settings, args: argparse.Namespace) -> None:
    try:
        post_id = UUID(args.post_id)
    except ValueError:
        logger.error("Not a valid post id: %s", args.post_id)
        sys.exit(2)

    store, posts, config = _open_stores(settings)
    result = run_resolve(
        ResolveRedirectInput(post_id=post_id), store=store, posts=posts, config=config
    )
    metadata = result.decision.to_metadata() if result.decision else None
    print(json.dumps({"postId": str(post_id), "redirect": metadata}, indent=2))


def handle_audit(settings: Settings, args: argparse.Namespace) -> None:
    store, posts, config = _open_stores(settings)
    result = run_audit(AuditRedirectsInput(), store=store, posts=posts, config=config)

    if not result.success:
        logger.error("Audit failed: %s", "; ".join(result.errors))
        sys.exit(2)

    print(f"Checked {result.total_checked} redirect(s).")
    for issue in result.issues:
        print(
            f" - [{issue.code}] redirect {issue.redirect_id} "
            f"(post {issue.source_post_id}): {issue.message}"
        )

    if result.issues:
        sys.exit(1)


def _open_stores(
    settings: Settings,
) -> tuple[SQLiteRedirectRepo, SQLitePostRepo, RedirectConfig]:
    rules = load_rules(settings.rules_path)
    timeout = rules.storage.timeout_seconds
    return (
        SQLiteRedirectRepo(settings.db_path, timeout=timeout),
        SQLitePostRepo(settings.db_path, timeout=timeout),
        RedirectConfig.from_rules(rules.redirects),
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Inkwell CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # resolve
    resolve_parser = subparsers.add_parser("resolve", help="Show the redirect of a post")
    resolve_parser.add_argument("post_id", help="Post UUID")

    # audit
    subparsers.add_parser("audit", help="Report broken, cyclic and invalid redirects")

    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(settings)

    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "resolve":
        handle_resolve(settings, args)
    elif args.command == "audit":
        handle_audit(settings, args)


if __name__ == "__main__":
    main()
