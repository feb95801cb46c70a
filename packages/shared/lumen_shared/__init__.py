"""Schemas and role rules shared between the Lumen server and dashboard client."""
