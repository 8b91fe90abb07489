"""HTTP routes: JSON API under /api, login flow and server-rendered pages."""
