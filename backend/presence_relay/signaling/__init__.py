"""Call-setup signaling broker."""
