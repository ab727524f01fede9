"""Socket.io chat relay."""
