"""Module entrypoint for ``python -m docportal`` CLI usage."""

from docportal.cli import main

if __name__ == "__main__":
    main()
