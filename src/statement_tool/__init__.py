"""
Statement Tool Package

Statement-of-account (對帳單) tooling for a small print shop.
Prices line items from tiered pricing rules, assigns customer-scoped serial
numbers, tracks signatures and produces revenue reports.
"""

__version__ = "1.0.0"
