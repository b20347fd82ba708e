"""
Application package.

Each domain (job cards, staff, attendance, loyalty, ...) has a schema
module, a service and a router in ``api/v1/endpoints``.  Versioning is
handled by grouping routers under ``api/<version>/``.
"""
