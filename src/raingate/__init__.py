"""Raingate — credential issuance and access control for the rainfall records API.

Signs and verifies identity tokens, extracts credentials from inbound
requests, gates routes on authentication and admin privilege, and runs
the API access request approval workflow.
"""

__version__ = "0.1.0"
