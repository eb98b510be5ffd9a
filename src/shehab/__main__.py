"""Module entry point."""

from shehab.cli import app

if __name__ == "__main__":
    app()
