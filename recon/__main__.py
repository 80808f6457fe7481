"""
recon/__main__.py: Entry point for running the CLI as a module
Allows: python -m recon <command>
"""

from recon.cli.main import cli

if __name__ == '__main__':
    cli()
