"""
REST API for the SaaS company directory.

Exposes the MongoDB company/region document, income statements and
valuation metrics via HTTP endpoints for the directory frontend.
"""

__version__ = "1.0.0"
