"""Contractor Hub: jobs, quotes and a client portal for a flooring contractor."""

__version__ = '1.0.0'
