"""Command line interface for SMC Signals."""
