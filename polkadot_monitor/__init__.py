"""Polkadot Account Monitoring - scrape, store, and report account activity.

This package watches a set of Polkadot/Kusama accounts through the Subscan
API, stores transfers, rewards/slashes and nominations in a database, and
publishes periodic CSV reports.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
