#!/usr/bin/env python
"""Command-line entry point for the clinic front desk project."""
import os
import sys


def main() -> None:
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Django is not importable; install the project with `pip install -e .` first."
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
