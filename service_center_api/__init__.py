"""
Top-level package for the Service Center API.

Makes ``service_center_api`` importable with fully qualified names like
``service_center_api.app.main``.  All functionality lives in the
``app`` subpackage.
"""

__all__ = []
