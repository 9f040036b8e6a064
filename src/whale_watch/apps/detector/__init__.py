"""Whale trade classifier, rolling trade store, and chart aggregation.

Classify each incoming trade by notional value, keep a bounded rolling
history for charting, and derive bucketed price/volume series, candles, and
indicators from that history on demand.
"""
