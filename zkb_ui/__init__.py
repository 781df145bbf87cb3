"""Command-line entry points for zk-benchmark-lib."""
