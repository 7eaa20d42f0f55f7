import os
import sys
from collections.abc import Mapping

from src.rules.models import Rules


def find_config_problems(rules: Rules, environ: Mapping[str, str] | None = None) -> list[str]:
    """List operational configuration problems (empty when startup may proceed)."""
    env = os.environ if environ is None else environ
    problems = []

    missing = [name for name in rules.ops.required_env if name not in env]
    if missing:
        problems.append(f"Missing required environment variables: {', '.join(missing)}")

    if rules.queue.backend == "sqs" and not rules.queue.queue_url:
        problems.append("queue.backend is 'sqs' but no queue URL is configured")

    if rules.storage.backend == "dynamodb" and not rules.storage.table_name:
        problems.append("storage.backend is 'dynamodb' but no table name is configured")

    return problems


def validate_ops_rules(rules: Rules, environ: Mapping[str, str] | None = None) -> None:
    """
    Validate operational requirements before startup.
    Exits the process on failure.
    """
    problems = find_config_problems(rules, environ)
    if problems:
        for problem in problems:
            print(f"CRITICAL: {problem}", file=sys.stderr)
        sys.exit(1)

    print("Configuration Validated.")
