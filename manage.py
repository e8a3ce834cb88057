#!/usr/bin/env python
"""Command-line entry point for the onboarding backend.

Besides the stock Django commands this exposes the app commands
``ensure_test_users``, ``seed_contract_templates`` and ``refresh_caches``.
"""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hmso.settings')
    try:
        from django.core.management import execute_from_command_line  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "Django is not importable; install the project first "
            "(pip install -e .) inside the active virtual environment."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
