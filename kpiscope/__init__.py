"""
KPI Scope: KPI catalog, query validation, remote KPI API client and
time-series statistics for network-performance dashboards.
"""

__version__ = "1.0.0"
