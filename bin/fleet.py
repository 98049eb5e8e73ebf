#!/usr/bin/env python3
"""Entry point for the ``fleet`` CLI when running from a checkout."""

from agent_fleet.cli import main


if __name__ == '__main__':
    main()
