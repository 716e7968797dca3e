"""
FastAPI routers for organizing API endpoints.

One module per area: imports (two-phase upload), prospects (collection and
dashboard stats) and the remaining remote-backed reads and writes.
"""
