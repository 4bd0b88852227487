"""
TaxGo - Source Package

A tax-compliance companion for Vietnamese household businesses.
It keeps an income/expense ledger, estimates presumptive tax,
projects license-fee tiers and talks to Gemini for advice and
receipt extraction.

DESIGN PRINCIPLES:
1. Tax figures come from the rate table, never from the LLM
2. AI suggests → Human confirms → Ledger records
3. External failures degrade to manual entry, never to a crash
4. Every ledger change is auditable
"""

__version__ = "1.0.0"
__author__ = "TaxGo Team"
