"""Main entry point when executing utiltools as a package.

This allows running the package using python -m utiltools.
"""

from utiltools.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
