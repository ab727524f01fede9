"""Service layer for the marketplace API, chat relay and jobs."""
