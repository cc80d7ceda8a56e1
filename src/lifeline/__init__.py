"""
LifeLine - data-access layer for the LifeLine health platform.

- lifeline.core: adapters, the Database facade, migrations
- lifeline.cli: the ``lifeline-db`` command-line tool
"""

__version__ = "0.1.0"
