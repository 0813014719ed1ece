"""
logpush - bulk-load parsed access logs into PostgreSQL or Elasticsearch.
"""

__version__ = "0.1.0"
