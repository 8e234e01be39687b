"""acme-nginx-glue internal implementation.

Nothing in this package is a stable API.

"""
