"""Mock Sucuri WAF API."""
