"""Server side of the chat relay: registry, fan-out and event handling."""
