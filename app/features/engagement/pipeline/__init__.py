"""
Profile pipeline: persona rules, deterministic synthesis, and real aggregation.
"""
