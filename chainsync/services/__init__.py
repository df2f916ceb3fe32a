"""
Services.

Indexing and auditing logic over the RPC and repository layers.
"""
