"""Feature packages (routers, services, persistence) for the service."""
