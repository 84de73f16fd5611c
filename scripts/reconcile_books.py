#!/usr/bin/env python3
from __future__ import annotations

from book_sync.cli import reconcile_main


if __name__ == "__main__":
    raise SystemExit(reconcile_main())
