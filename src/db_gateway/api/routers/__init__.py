"""
db_gateway.api.routers

HTTP routers: health probes and the per-database read/write surface.
"""

# Package marker.
