"""
FleetLink

Backend discovery, a resilient API client and stale-while-revalidate caching
for the driver app's backend.
"""

__version__ = "1.0.0"
