"""Domain services: entitlements, menu resolution, orders and payments."""
