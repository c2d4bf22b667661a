"""
Entry point for running the package as a script.

Usage:
    python -m spm_publish run create-local-manifest --variant debug
"""

from .cli import main

if __name__ == "__main__":
    main()
