"""Measurement of IPv6 support and latency from the host's vantage point."""
