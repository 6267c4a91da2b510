"""
daily_match.py

Purpose:
    Script wrapper around src.dinner_match.cli so the CLI runs from a
    checkout without installing the package.

Usage:
    python scripts/daily_match.py whoami
    python scripts/daily_match.py pair <partner-user-id> --name Lukas
    python scripts/daily_match.py today
    python scripts/daily_match.py vote like
    python scripts/daily_match.py watch
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.dinner_match.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
