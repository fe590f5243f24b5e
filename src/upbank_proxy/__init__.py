"""
upbank_proxy

Proxy that serves Up Bank transactions to Tableau:
- clients/up_client.py: paginated, rate-limit aware Up API client
- transform.py / csv_export.py: flat rows and their CSV rendering
- cache.py: TTL cache with a single-flight refresh
- app.py: FastAPI app factory and entrypoint
"""

__version__ = "1.0.0"
