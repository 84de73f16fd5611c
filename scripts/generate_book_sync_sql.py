#!/usr/bin/env python3
from __future__ import annotations

from book_sync.cli import plan_main


if __name__ == "__main__":
    raise SystemExit(plan_main())
