"""Storage and domain services behind the HTTP and WebSocket surfaces."""
