"""Entry point for running monitor_sync as a module."""

from monitor_sync.cli import app

if __name__ == "__main__":
    app()
