"""
Engagement feature package.

Everything behind GET /api/stats lives here: domain DTOs and ports, the
synthesis / aggregation / persona pipeline, cache and credential repositories,
the engine that orchestrates them, and the API router. Import submodules
directly (e.g. `app.features.engagement.api.router`); this package does not
re-export them so the Telegram adapters can import the domain models freely.
"""
