"""SiteChat API server, chat service and background jobs."""
