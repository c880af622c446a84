"""
Core infrastructure for the Tubely backend.

- auth: Bearer JWT verification and the current-user dependency
- database: MongoDB async client (Motor) holding the video catalog
- storage: S3-compatible object store client (boto3)
"""
