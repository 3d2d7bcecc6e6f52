"""
Module entry point for: python -m aposplit

Allows running the splitter directly as a module:
    python -m aposplit split <pdf_path> [options]
    python -m aposplit inspect <pdf_path> [options]
    python -m aposplit info <pdf_path>
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
