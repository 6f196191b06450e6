"""
Catalog core: vision extraction, catalog resolution, quota, record store,
and the ingestion pipeline that ties them together.
"""
