#!/usr/bin/env python3
"""Run the fuzz tester CLI from a source checkout (same as the ``restsarsa`` script)."""

from restsarsa.cli import cli


if __name__ == '__main__':
    cli()
