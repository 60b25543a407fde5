#!/usr/bin/env python

import sys


def main():
    """Main entry point - dispatches to the CLI"""
    from timesheet_bot.cli import main as cli_main
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
