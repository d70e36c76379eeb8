"""
Main entry point for the aictx CLI.
"""

from aictx.cli import cli


def main() -> None:
    """Main function for the aictx CLI."""
    cli()


if __name__ == "__main__":
    main()
