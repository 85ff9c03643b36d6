"""cmreceiver command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``cmreceiver`` script).
"""

from cmreceiver.cli.main import cli

__all__ = ["cli"]
