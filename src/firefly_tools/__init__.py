"""
Firefly III Tools

A typed async client for the Firefly III REST API plus small command-line
tools built on it (connection check, account/transaction overview, bulk
category import).
"""

__version__ = "0.1.0"
