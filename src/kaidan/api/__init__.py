"""HTTP layer: route registration and request helpers."""
