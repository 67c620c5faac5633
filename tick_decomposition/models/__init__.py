"""
Decomposition Models
====================
Event classification, conditional sub-model estimation, composite CDF,
path simulation, and Black-Scholes Greek P&L.
"""
