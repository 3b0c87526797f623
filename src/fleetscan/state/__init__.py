"""State layer.

Deterministic policies (check-in transitions, history retention) and the
components that own per-vehicle state derived from scans.
"""
