"""
NoteMate Backend — API Routes Package
======================================

Route Inventory:
    - admin.py:   /api/admin/*   (analytics views, custom event tracking)
    - health.py:  GET /health    (liveness probe)

Routes stay thin: extract parameters, call AnalyticsService, wrap the result.
"""
