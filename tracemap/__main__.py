"""CLI entry point for running tracemap as a module."""

from .main import main


if __name__ == "__main__":
    main()
