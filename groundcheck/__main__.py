"""
Allow running GroundCheck as a module: ``python -m groundcheck``.

Delegates to the CLI entry point so that both ``groundcheck``
(console script) and ``python -m groundcheck`` behave identically.
"""

from groundcheck.cli import main

if __name__ == "__main__":
    main()
