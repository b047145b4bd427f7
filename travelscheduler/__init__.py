"""
Travel-aware scheduling engine for mobile service providers.
"""

__version__ = "0.1.0"
