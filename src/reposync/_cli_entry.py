"""Console-script entry point; reports a missing 'cli' extra instead of a traceback."""

import sys


def main():
    try:
        from .cli import main as cli_main
    except ModuleNotFoundError as exc:
        if exc.name != "click":
            raise
        sys.exit("reposync: the command line needs click; run `pip install reposync[cli]`")
    cli_main()
