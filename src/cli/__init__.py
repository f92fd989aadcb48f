"""Command-line tools for festival research.

- ``python -m src.cli.research``: research one festival and print a report.

The CLI uses argparse and constructs its own services via src.main, since
it runs as a one-shot script rather than a long-lived server.
"""
