"""
Entry point for running the package as a module.

Usage:
    python -m football_league <command>
"""

from football_league.cli import cli

if __name__ == "__main__":
    cli()
