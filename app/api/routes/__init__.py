"""
API routes.

- health: public service info and health checks
- soccer, basketball: tenant read routes, mounted under /api/v1
"""
