"""Planet Exporter - service dependency mapping for a single host.

Correlates live socket state with a host inventory and exposes the
resulting upstream/downstream dependency graph as Prometheus metrics.
"""

__version__ = "0.1.0"
