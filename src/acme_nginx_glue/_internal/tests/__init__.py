"""acme-nginx-glue tests"""
