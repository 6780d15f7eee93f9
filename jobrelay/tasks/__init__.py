"""Background loops owned by the application lifespan."""
