"""
Main entry point for local-gate package.

Usage:
    python -m local_gate [--web|--version] [--vault PATH]
"""

import os
import sys
import argparse


def main():
    """Main entry point for the package."""
    parser = argparse.ArgumentParser(
        description="Local Gate - Context Pack Engine for local inference backends"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information",
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Start web server (FastAPI)",
    )
    parser.add_argument(
        "--vault",
        default=None,
        help="Notes folder to serve (overrides VAULT_PATH)",
    )

    args = parser.parse_args()

    if args.version:
        from local_gate import __version__
        print(f"local-gate version {__version__}")
        return 0

    if args.vault:
        # Read by Settings on first import
        os.environ["VAULT_PATH"] = args.vault

    print("Starting web server...")
    from local_gate.server.web import main as web_main
    return web_main()


if __name__ == "__main__":
    sys.exit(main())
