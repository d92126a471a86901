"""Provider adapters and the provider registry."""
