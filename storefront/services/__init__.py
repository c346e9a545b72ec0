"""Business services sitting between the API routes and the repositories."""
