"""Command-line interface for the LifeLine database (``lifeline-db``)."""
