"""Whale watcher service for streaming Binance trades to live viewers.

Stream every BTC/USDT trade from the Binance WebSocket, run it through the
whale detector, and fan trade updates, whale alerts, metrics, and chart
snapshots out to viewers connected over WebSocket. Expose the same metrics
and chart snapshots as read-only HTTP endpoints for health checks.
"""
