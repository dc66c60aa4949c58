"""
CLI tool for sending policy expiry reminders.
Usage: python -m cli.send_reminders [--date YYYY-MM-DD] [--json]

Schedule daily at 09:00 UTC, e.g. crontab:
  0 9 * * * cd /srv/insurance-ai && python -m cli.send_reminders --quiet
"""

import sys
import json
import logging
import argparse
from datetime import date

from insurance_ai.config import get_settings
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.email_service import EmailService
from insurance_ai.core.mongodb_client import close_mongodb_client
from insurance_ai.reminders import ReminderRunResult, send_expiry_reminders


# ANSI color codes for terminal output
class Colors:
    BLUE = '\033[94m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def print_result(result: ReminderRunResult):
    """Print the reminder run in a formatted way."""
    print(f"\n{Colors.BOLD}{Colors.BLUE}Policy Expiry Reminders{Colors.ENDC}")
    print("-" * 40)

    for customer in result.results:
        if not customer.success:
            print(f"  {Colors.RED}!{Colors.ENDC} {customer.customer_id}: {customer.error}")
            continue
        if not customer.policy_notifications:
            continue
        for policy in customer.policy_notifications:
            if policy.success:
                print(f"  {Colors.GREEN}sent{Colors.ENDC} {customer.customer_id}: {policy.policy_name}")
            else:
                print(f"  {Colors.YELLOW}failed{Colors.ENDC} {customer.customer_id}: {policy.policy_name} ({policy.error})")

    print(f"\n{Colors.BOLD}Customers processed:{Colors.ENDC} {len(result.results)}")
    print(f"{Colors.BOLD}Reminders sent:{Colors.ENDC} {result.total_policy_notifications}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Email customers whose uploaded policies expire tomorrow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cli.send_reminders
  python -m cli.send_reminders --date 2025-06-04
  python -m cli.send_reminders --json
        """
    )

    parser.add_argument(
        "--date", "-d",
        type=parse_date,
        default=None,
        help="Treat this date (YYYY-MM-DD) as today; defaults to today in UTC"
    )
    parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output result as JSON only"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress progress output"
    )

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=logging.WARNING if args.quiet or args.json else settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        store = DocumentStore.from_settings(settings)
        result = send_expiry_reminders(store, EmailService(settings), today=args.date, app_name=settings.app_name)

        if args.json:
            print(result.model_dump_json(indent=2))
        elif not args.quiet:
            print_result(result)

        sys.exit(0 if all(r.success for r in result.results) else 1)

    except Exception as e:
        if args.json:
            print(json.dumps({"success": False, "error": str(e)}))
        else:
            print(f"\n{Colors.RED}Error: {e}{Colors.ENDC}")
        sys.exit(1)
    finally:
        close_mongodb_client()


if __name__ == "__main__":
    main()
