"""
failtrack package entry point.

Allows running failtrack as a module:
    python -m failtrack
"""

from failtrack.cli import main

if __name__ == "__main__":
    main()
