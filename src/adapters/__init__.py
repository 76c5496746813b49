"""Infrastructure adapters: HTTP transport, directory client, JSON sink."""
