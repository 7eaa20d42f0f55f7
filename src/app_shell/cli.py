import argparse
import logging
import sys
from datetime import UTC, datetime

from src.components.subscribers import (
    StoreError,
    Subscriber,
    SubscriberStorePort,
    subscriber_state,
    validate_email,
)
from src.components.subscribers.models import NewsletterConfig
from src.components.subscription.component import publish_validation
from src.components.subscription.models import ValidationMessage
from src.components.subscription.ports import ValidationQueuePort
from src.components.token_issuer import IssueTokenInput, run_issue_token
from src.components.token_issuer.ports import ConfirmationMailerPort

logger = logging.getLogger("cli")


def _lookup(store: SubscriberStorePort, raw_email: str) -> list[Subscriber]:
    validation = validate_email(raw_email)
    if not validation.is_valid or validation.email is None:
        logger.error("Invalid email: %s", validation.errors[0].message)
        sys.exit(2)

    try:
        return store.find_by_email(validation.email)
    except StoreError as e:
        logger.error("Lookup failed: %s", e)
        sys.exit(1)


def _awaiting_confirmation(subscribers: list[Subscriber]) -> list[Subscriber]:
    return [s for s in subscribers if s.active and not s.validated]


def handle_show(store: SubscriberStorePort, args: argparse.Namespace) -> int:
    subscribers = _lookup(store, args.email)
    if not subscribers:
        print(f"No subscriber found for {args.email}")
        return 1

    for s in subscribers:
        expires = s.token_expiration.isoformat() if s.token_expiration else "-"
        print(
            f"{s.id}  state={subscriber_state(s).value}  active={s.active}  "
            f"validated={s.validated}  token_expires={expires}  created={s.created_at.isoformat()}"
        )
    return 0


def handle_resend(
    store: SubscriberStorePort,
    queue: ValidationQueuePort,
    args: argparse.Namespace,
) -> int:
    """Re-publish issuance events for active, unconfirmed subscribers."""
    targets = _awaiting_confirmation(_lookup(store, args.email))
    if not targets:
        print(f"Nothing to resend for {args.email}")
        return 1

    failed = 0
    for s in targets:
        if publish_validation(queue, s.email, s.id):
            print(f"Queued validation for {s.id}")
        else:
            failed += 1
    return 1 if failed else 0


def handle_issue(
    store: SubscriberStorePort,
    mailer: ConfirmationMailerPort | None,
    config: NewsletterConfig,
    args: argparse.Namespace,
) -> int:
    """Issue tokens directly, bypassing the queue."""
    targets = _awaiting_confirmation(_lookup(store, args.email))
    if not targets:
        print(f"Nothing to issue for {args.email}")
        return 1

    status = 0
    now = datetime.now(UTC)
    for s in targets:
        result = run_issue_token(
            IssueTokenInput(message=ValidationMessage(email=s.email, subscriber_id=s.id)),
            store,
            mailer=mailer,
            config=config,
            now=now,
        )
        print(f"{s.id}: {result.outcome.value}")
        if result.confirmation_url:
            print(f"Link: {result.confirmation_url}")
        if not result.success:
            status = 1
    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Newsletter subscriber CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # show
    show_parser = subparsers.add_parser("show", help="Show subscriber records for an email")
    show_parser.add_argument("--email", required=True)

    # resend
    resend_parser = subparsers.add_parser(
        "resend", help="Queue a new confirmation token for an unconfirmed email"
    )
    resend_parser.add_argument("--email", required=True)

    # issue
    issue_parser = subparsers.add_parser(
        "issue", help="Issue a confirmation token immediately, without the queue"
    )
    issue_parser.add_argument("--email", required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    from src.api.deps import get_mailer, get_newsletter_config, get_queue, get_store

    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    try:
        store = get_store()
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    if args.command == "show":
        return handle_show(store, args)
    elif args.command == "resend":
        return handle_resend(store, get_queue(), args)
    elif args.command == "issue":
        return handle_issue(store, get_mailer(), get_newsletter_config(), args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
