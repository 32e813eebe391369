"""
Ledger normalization, P&L classification, KPI derivation and what-if simulation.
"""
