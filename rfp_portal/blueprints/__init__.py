"""HTTP blueprints of the RFP portal (JSON API)."""
