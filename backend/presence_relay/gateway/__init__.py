"""WebSocket endpoint and event dispatch."""
