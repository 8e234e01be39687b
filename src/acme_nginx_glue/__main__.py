"""Run acme-nginx-glue with ``python -m acme_nginx_glue``."""
import sys

from acme_nginx_glue import main

if __name__ == "__main__":
    sys.exit(main.main())
