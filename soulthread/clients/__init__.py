"""HTTP clients for news, AI, email and storage providers."""
