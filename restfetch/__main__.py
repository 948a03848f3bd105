"""Main entry point when executing restfetch as a package.

This allows running the package using python -m restfetch.
"""

from restfetch.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
