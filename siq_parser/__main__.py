"""
Module entry point for: python -m siq_parser

Allows running the parser directly as a module:
    python -m siq_parser parse <package.siq> [options]
    python -m siq_parser batch <directory> [options]
    python -m siq_parser serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
