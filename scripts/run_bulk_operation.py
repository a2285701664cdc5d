#!/usr/bin/env python3
"""
Run an admin bulk operation from the command line

Examples:
    run_bulk_operation.py suspend --users u1 u2 --reason "Repeated no-shows" --days 14
    run_bulk_operation.py verify --users-file approved.txt
    run_bulk_operation.py message --users u1 --subject "Hola" --message "<p>Nuevo horario</p>"
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
from casaora.services.bulk_orchestrator import BulkAction, BulkOperationOrchestrator, BulkOperationState
from config.config import Config


def print_notification(level, message):
    print(f"[{level.upper()}] {message}")


def read_user_ids(args):
    user_ids = list(args.users or [])
    if args.users_file:
        with open(args.users_file) as f:
            user_ids.extend(line.strip() for line in f if line.strip())
    return user_ids


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Apply one admin action to a batch of users")
    parser.add_argument('action', choices=[action.value for action in BulkAction])
    parser.add_argument('--users', nargs='*', help="User ids")
    parser.add_argument('--users-file', help="File with one user id per line")
    parser.add_argument('--reason', help="Suspension reason")
    parser.add_argument('--permanent', action='store_true', help="Suspend permanently")
    parser.add_argument('--days', type=int, default=7, help="Temporary suspension length in days")
    parser.add_argument('--subject', help="Message subject")
    parser.add_argument('--message', help="Message body (HTML)")
    parser.add_argument('--api-url', default=Config.ADMIN_API_URL)
    parser.add_argument('--yes', action='store_true', help="Skip the confirmation prompt")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    orchestrator = BulkOperationOrchestrator(
        args.api_url,
        api_token=Config.ADMIN_API_TOKEN,
        notifier=print_notification,
        timeout=Config.ADMIN_API_TIMEOUT_SECONDS
    )
    orchestrator.select_users(read_user_ids(args))

    if not orchestrator.begin(args.action):
        return 1

    if not args.yes:
        answer = input(f"{args.action} {len(orchestrator.selected_user_ids)} users? [y/N] ")
        if answer.strip().lower() != 'y':
            orchestrator.close()
            return 1

    progress = orchestrator.execute(
        reason=args.reason,
        suspension_type='permanent' if args.permanent else 'temporary',
        duration_days=args.days,
        subject=args.subject,
        message=args.message
    )

    for error in progress.errors:
        print(f"  {error.get('userId')}: {error.get('error')}")

    succeeded = orchestrator.state in (BulkOperationState.SETTLED, BulkOperationState.IDLE)
    orchestrator.close()
    return 0 if succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
