"""
Lumen dashboard client.

Keeps the dashboard's organization context (current organization, role and
capability flags) in sync with the Lumen API, with a local cache so a
restart shows the last known organizations before the server answers.
"""

__version__ = "0.1.0"
