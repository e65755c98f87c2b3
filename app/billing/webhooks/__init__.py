"""
Provider webhook ingestion: handler registry, processor and endpoint.
"""
