"""
This allows the CLI to be run as a module with `python -m aicmd`.
"""
from .cli import main

if __name__ == "__main__":
    main()
