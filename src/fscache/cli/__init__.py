"""Command-line interface for fscache."""
