"""Adcoin Ledger package.

This package is organized by feature modules (participants, transactions,
ledger, views, auth) with a thin Flask controller layer and service/repository
layers underneath.
"""
