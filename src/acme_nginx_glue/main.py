"""acme-nginx-glue main public entry point."""
from typing import List
from typing import Optional
from typing import Union

from acme_nginx_glue._internal import main as internal_main


def main(cli_args: Optional[List[str]] = None) -> Optional[Union[str, int]]:
    """Run acme-nginx-glue.

    :param cli_args: command line to acme-nginx-glue, defaults to ``sys.argv[1:]``
    :type cli_args: `list` of `str`

    :returns: value for `sys.exit` about the exit status of acme-nginx-glue
    :rtype: `str` or `int` or `None`

    """
    return internal_main.main(cli_args)
