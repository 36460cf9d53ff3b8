"""Command-line interface for RAID."""
