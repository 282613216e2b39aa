"""
db_gateway.static_site

Static HTML pre-rendering of sampled data, one page set per configured database.
"""

from db_gateway.static_site.generator import BuildReport, StaticPageGenerator

__all__ = ["BuildReport", "StaticPageGenerator"]
