"""Core infrastructure: settings-driven logging, request context, clock,
storage backends and the Redis client."""
