"""
Starview: asset fetcher for the game's content delivery network.

The package resolves the currently published asset version through the game's
signed API, caches the resulting manifest and downloads the content-addressed
archives with bounded concurrency.
"""

__version__ = "1.0.7"
