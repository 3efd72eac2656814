"""Command-line interface for kiosk-handoff."""
