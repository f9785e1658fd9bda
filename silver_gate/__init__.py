"""
silver-gate: bronze-to-silver quality gate.

Cleanses raw staging records into typed silver tables and routes every
rejected record to a quarantine table with its original payload.
"""

__version__ = "0.1.0"
