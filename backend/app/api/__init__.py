"""
Tubely API Package.

Endpoints are versioned by URL prefix; v1/ holds the current routes.
"""
