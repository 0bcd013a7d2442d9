"""Dashboard for a remote table of YouTube video metadata with AI generation panels."""

__all__ = ["config", "models", "dashboard", "modals", "server"]
