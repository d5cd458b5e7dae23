"""
Tradebook API - a small portfolio-tracking service.

Users place trades that are logged and reconciled into positions and
holdings; reads are enriched with live quotes, and a per-symbol endpoint
returns AI-written trend commentary.
"""

__version__ = "1.0.0"
