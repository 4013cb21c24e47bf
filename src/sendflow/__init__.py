"""
SendFlow money-movement service: transfers, bill payments and pending claims
on top of a hosted ledger platform.
"""

__version__ = "0.1.0"
