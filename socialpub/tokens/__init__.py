"""Meta access-token exchange and renewal."""
