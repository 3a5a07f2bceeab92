"""
Read-only access to the `inscriptions` table written by the indexer.
"""
