"""Entry point for `python -m cmreceiver`.

Usage:
    python -m cmreceiver
    uv run python -m cmreceiver
"""

from __future__ import annotations

import asyncio

from cmreceiver.app import main

asyncio.run(main())
